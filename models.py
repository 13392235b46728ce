# models.py
# Role: SQLAlchemy ORM models for the budget tracker domain.
#       Defines users (the auth provider), their transactions,
#       and the per-user preferences singleton.

from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, Float, Text, JSON, ForeignKey
from sqlalchemy.orm import relationship

from db import Base


class User(Base):
    """
    ORM model for a registered user.

    Passwords are stored as bcrypt hashes; the id doubles as the
    owner key for transactions and preferences.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    email = Column(String, unique=True, index=True, nullable=False)

    display_name = Column(String, nullable=True)

    # bcrypt hash, never the plain password
    password_hash = Column(String, nullable=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    transactions = relationship(
        "Transaction",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    preferences = relationship(
        "UserPreferences",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )


class Transaction(Base):
    """
    ORM model representing a single income or expense record.

    Amounts are always positive; the direction is carried by `type`.
    Records never reference each other.
    """

    __tablename__ = "transactions"

    # Primary key (assigned by the store)
    id = Column(Integer, primary_key=True, index=True)

    # Owner
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # "income" or "expense"
    type = Column(String(16), nullable=False)

    # One of the enumerated categories for the type (see app/services/categories.py)
    category = Column(String, nullable=False)

    # User-supplied date and time of the transaction
    date = Column(DateTime, nullable=False, index=True)

    # Positive amount in the user's preferred currency
    amount = Column(Float, nullable=False)

    # Optional free-text notes
    notes = Column(Text, nullable=True)

    user = relationship("User", back_populates="transactions")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "category": self.category,
            "date": self.date.isoformat() if self.date else None,
            "amount": self.amount,
            "notes": self.notes,
        }


class UserPreferences(Base):
    """
    Per-user preferences: display currency, monthly category budgets
    and an optional avatar image stored as a data URI.
    """

    __tablename__ = "user_preferences"

    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True)

    currency = Column(String(3), nullable=False, default="USD")

    # {"Food & Drinks": 300.0, "Shopping": 150.0}
    budgets = Column(JSON, nullable=False, default=dict)

    avatar = Column(Text, nullable=True)

    updated_at = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="preferences")
