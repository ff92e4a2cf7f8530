from dataclasses import asdict, dataclass
from typing import Optional

FIELDS = ('name', 'email', 'status')


@dataclass
class Customer:
    id: Optional[int] = None
    name: str = ''
    email: str = ''
    status: str = ''

    @classmethod
    def from_row(cls, row):
        """Build a customer from a sqlite3.Row or a RealDictCursor row"""
        return cls(
            id=row['id'],
            name=row['name'] or '',
            email=row['email'] or '',
            status=row['status'] or '',
        )

    def apply(self, update):
        """Overwrite only the fields the caller actually sent"""
        for field in FIELDS:
            value = getattr(update, field)
            if value is not None:
                setattr(self, field, value)
        return self

    def to_dict(self):
        return asdict(self)


@dataclass
class CustomerUpdate:
    """Request body of a PUT; None means the key was absent or null."""
    name: Optional[str] = None
    email: Optional[str] = None
    status: Optional[str] = None
