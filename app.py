import logging
import os

from flask import Blueprint, Flask, current_app, json, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import BadRequest

from auth import AuthConfigError, build_verifier, install_auth_gate
from database import DB_ERRORS, Database, DatabaseConfigError, describe_database_url
from validators import validate_customer_update, validate_new_customer

logging.basicConfig(
    level=os.environ.get('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
)
logger = logging.getLogger(__name__)

DEFAULT_PORT = 2019


def load_config():
    """Read service settings from the environment"""
    origins = os.environ.get('CORS_ORIGINS', '')
    return {
        'DATABASE_URL': os.environ.get('DATABASE_URL'),
        'AUTH_MODE': os.environ.get('AUTH_MODE', 'static'),
        'AUTH_TOKEN': os.environ.get('AUTH_TOKEN'),
        'JWT_SECRET_KEY': os.environ.get('JWT_SECRET_KEY'),
        'CORS_ORIGINS': [o.strip() for o in origins.split(',') if o.strip()],
        'PORT': int(os.environ.get('PORT', DEFAULT_PORT)),
    }


def get_database() -> Database:
    return current_app.extensions['database']


def _read_json_body():
    """Parse the request body as JSON regardless of Content-Type"""
    body = request.get_data(as_text=True)
    try:
        return json.loads(body)
    except (ValueError, RecursionError) as e:
        raise BadRequest(f"Failed to decode JSON object: {e}") from e


# ==================== CUSTOMER ENDPOINTS ====================

def api_create_customer():
    """Create new customer"""
    try:
        data = _read_json_body()
    except BadRequest as e:
        return jsonify({'error': e.description}), 400

    is_valid, result = validate_new_customer(data)
    if not is_valid:
        return jsonify({'error': result}), 400

    customer = result
    try:
        customer.id = get_database().add_customer(customer.name, customer.email, customer.status)
    except DB_ERRORS as e:
        logger.exception("Failed to create customer")
        return jsonify({'error': str(e)}), 500

    logger.info("Created customer %s", customer.id)
    return jsonify(customer.to_dict()), 201


def api_get_customer(customer_id):
    """Get single customer by ID"""
    try:
        customer = get_database().get_customer_by_id(customer_id)
    except DB_ERRORS as e:
        logger.exception("Failed to retrieve customer %s", customer_id)
        return jsonify({'error': str(e)}), 500

    if customer is None:
        return jsonify({'error': 'Customer not found'}), 404
    return jsonify(customer.to_dict())


def api_get_customers():
    """Get all customers"""
    try:
        customers = get_database().get_all_customers()
    except DB_ERRORS as e:
        logger.exception("Failed to retrieve customers")
        return jsonify({'error': str(e)}), 500

    return jsonify([c.to_dict() for c in customers])


def api_update_customer(customer_id):
    """Update existing customer, keeping any field the body leaves out"""
    database = get_database()
    try:
        customer = database.get_customer_by_id(customer_id)
    except DB_ERRORS as e:
        logger.exception("Failed to retrieve customer %s", customer_id)
        return jsonify({'error': str(e)}), 500

    if customer is None:
        return jsonify({'error': 'Customer not found'}), 404

    try:
        data = _read_json_body()
    except BadRequest as e:
        return jsonify({'error': e.description}), 400

    is_valid, result = validate_customer_update(data)
    if not is_valid:
        return jsonify({'error': result}), 400

    customer.apply(result)
    try:
        database.update_customer(customer_id, customer.name, customer.email, customer.status)
    except DB_ERRORS as e:
        logger.exception("Failed to update customer %s", customer_id)
        return jsonify({'error': str(e)}), 500

    return jsonify(customer.to_dict())


def api_delete_customer(customer_id):
    """Delete customer; succeeds whether or not the row existed"""
    try:
        removed = get_database().delete_customer(customer_id)
    except DB_ERRORS as e:
        logger.exception("Failed to delete customer %s", customer_id)
        return jsonify({'error': str(e)}), 500

    if not removed:
        logger.info("Delete of customer %s matched no rows", customer_id)
    return jsonify({'message': 'customer deleted'})


def create_customers_blueprint(verifier):
    """Bind the customer routes under the root group, behind the auth gate"""
    api = Blueprint('customers', __name__)
    install_auth_gate(api, verifier)

    api.add_url_rule('/customers', view_func=api_create_customer, methods=['POST'])
    api.add_url_rule('/customers/<customer_id>', view_func=api_get_customer, methods=['GET'])
    api.add_url_rule('/customers', view_func=api_get_customers, methods=['GET'])
    api.add_url_rule('/customers/<customer_id>', view_func=api_update_customer, methods=['PUT'])
    api.add_url_rule('/customers/<customer_id>', view_func=api_delete_customer, methods=['DELETE'])
    return api


def create_app(test_config=None, database=None, verifier=None):
    """
    Build the Flask app.

    `database` and `verifier` may be passed in directly (tests do this);
    otherwise they are built from the environment. A database built here is
    connected before the app is returned, so a bad DATABASE_URL fails startup.
    """
    app = Flask(__name__)
    app.config.update(load_config())
    if test_config:
        app.config.update(test_config)

    if app.config['CORS_ORIGINS']:
        CORS(app, origins=app.config['CORS_ORIGINS'])
    else:
        CORS(app)

    if verifier is None:
        verifier = build_verifier(app.config)

    if database is None:
        database_url = app.config['DATABASE_URL']
        if database_url:
            logger.info("DATABASE_URL detected: %s", describe_database_url(database_url))
        else:
            logger.warning("DATABASE_URL not set; using local SQLite file")
        database = Database(database_url).connect()

    app.extensions['database'] = database
    app.register_blueprint(create_customers_blueprint(verifier))
    return app


def main():
    try:
        app = create_app()
    except (DatabaseConfigError, AuthConfigError) + DB_ERRORS:
        logger.exception("Startup failed")
        raise SystemExit(1)

    app.run(host='0.0.0.0', port=app.config['PORT'])


if __name__ == '__main__':
    main()
