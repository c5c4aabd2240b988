"""SQLAlchemy models for the cashflow database."""

from sqlalchemy import (
    Boolean,
    Column,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import Session, declarative_base, relationship, sessionmaker

Base = declarative_base()


class LedgerMetadata(Base):
    """Document header: version and metadata section (single row)."""

    __tablename__ = "ledger_metadata"

    id = Column(Integer, primary_key=True)
    version = Column(String, nullable=True)
    created = Column(String, nullable=True)
    last_modified = Column(String, nullable=True)
    default_currency = Column(String, nullable=True)
    owner = Column(String, nullable=True)
    description = Column(Text, nullable=True)


class Currency(Base):
    """Currency model."""

    __tablename__ = "currencies"

    id = Column(Integer, primary_key=True)
    code = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=True)
    symbol = Column(String, nullable=True)
    decimal_places = Column(Float, nullable=True)
    is_default = Column(Boolean, default=False, nullable=False)

    # Relationships
    exchange_rates = relationship(
        "ExchangeRate",
        back_populates="currency",
        cascade="all, delete-orphan",
        order_by="ExchangeRate.position",
    )


class ExchangeRate(Base):
    """Historical exchange rate of a currency against the default currency."""

    __tablename__ = "exchange_rates"

    id = Column(Integer, primary_key=True)
    currency_id = Column(Integer, ForeignKey("currencies.id"), nullable=False)
    position = Column(Integer, nullable=False)
    date = Column(String, nullable=False)
    rate = Column(Float, nullable=True)
    source = Column(String, nullable=True)

    __table_args__ = (UniqueConstraint("currency_id", "date", name="uq_currency_rate_date"),)

    # Relationships
    currency = relationship("Currency", back_populates="exchange_rates")


class Account(Base):
    """Account model."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    account_id = Column(String, unique=True, nullable=False)
    name = Column(String, unique=True, nullable=False)
    type = Column(String, nullable=True)
    currency = Column(String, nullable=True)
    opened = Column(String, nullable=True)
    closed = Column(Boolean, default=False, nullable=False)
    closed_date = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    metadata_json = Column(Text, nullable=True)


class Transaction(Base):
    """Transaction model."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    transaction_id = Column(String, unique=True, nullable=False)
    position = Column(Integer, nullable=False)
    date = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    payee = Column(String, nullable=True)
    tags_json = Column(Text, nullable=True)
    metadata_json = Column(Text, nullable=True)

    # Relationships
    postings = relationship(
        "Posting",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="Posting.position",
    )


class Posting(Base):
    """One leg of a transaction. Amounts are stored as text to keep their precision."""

    __tablename__ = "postings"

    id = Column(Integer, primary_key=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=False)
    position = Column(Integer, nullable=False)
    account_id = Column(String, nullable=True)
    amount = Column(String, nullable=True)
    currency = Column(String, nullable=True)
    fx_rate = Column(Float, nullable=True)
    fx_equivalent_amount = Column(String, nullable=True)

    # Relationships
    transaction = relationship("Transaction", back_populates="postings")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
