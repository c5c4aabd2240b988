"""Mapper functions to convert between record mappings and SQLAlchemy models.

Records keep the field names they have in a ledger document (camelCase);
ORM models use column names.
"""

import json
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from cashflow.database.models import (
    Account as ORMAccount,
    Currency as ORMCurrency,
    ExchangeRate as ORMExchangeRate,
    LedgerMetadata as ORMLedgerMetadata,
    Posting as ORMPosting,
    Transaction as ORMTransaction,
)
from cashflow.utils.date_parser import format_date


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return format_date(value)


def _amount_to_text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _amount_from_text(value: Optional[str]) -> Any:
    if value is None:
        return None
    try:
        return Decimal(value)
    except InvalidOperation:
        return value


def _places_from_column(value: Optional[float]) -> Any:
    if value is not None and float(value).is_integer():
        return int(value)
    return value


def _json_dumps(value: Any) -> str:
    return json.dumps(value if value is not None else {}, default=str)


def _json_loads(value: Optional[str], default: Any) -> Any:
    return json.loads(value) if value else default


def metadata_to_record(orm_metadata: ORMLedgerMetadata) -> dict[str, Any]:
    """Convert the metadata row to a document metadata section."""
    record: dict[str, Any] = {
        "created": orm_metadata.created,
        "lastModified": orm_metadata.last_modified,
    }
    if orm_metadata.default_currency:
        record["defaultCurrency"] = orm_metadata.default_currency
    if orm_metadata.owner:
        record["owner"] = orm_metadata.owner
    if orm_metadata.description:
        record["description"] = orm_metadata.description
    return record


def metadata_to_orm(version: Any, metadata: dict[str, Any]) -> ORMLedgerMetadata:
    """Convert the document header to the metadata row."""
    return ORMLedgerMetadata(
        version=None if version is None else str(version),
        created=_text(metadata.get("created")),
        last_modified=_text(metadata.get("lastModified")),
        default_currency=metadata.get("defaultCurrency"),
        owner=metadata.get("owner"),
        description=metadata.get("description"),
    )


def currency_to_record(orm_currency: ORMCurrency) -> dict[str, Any]:
    """Convert SQLAlchemy Currency model to a currency record."""
    return {
        "code": orm_currency.code,
        "name": orm_currency.name,
        "symbol": orm_currency.symbol,
        "decimalPlaces": _places_from_column(orm_currency.decimal_places),
        "isDefault": bool(orm_currency.is_default),
        "exchangeRate": [exchange_rate_to_record(r) for r in orm_currency.exchange_rates],
    }


def currency_to_orm(record: dict[str, Any]) -> ORMCurrency:
    """Convert a currency record to a SQLAlchemy Currency model."""
    return ORMCurrency(
        code=record.get("code"),
        name=record.get("name"),
        symbol=record.get("symbol"),
        decimal_places=record.get("decimalPlaces"),
        is_default=bool(record.get("isDefault")),
        exchange_rates=[
            exchange_rate_to_orm(rate, position)
            for position, rate in enumerate(record.get("exchangeRate") or [])
        ],
    )


def exchange_rate_to_record(orm_rate: ORMExchangeRate) -> dict[str, Any]:
    """Convert SQLAlchemy ExchangeRate model to a rate record."""
    record: dict[str, Any] = {"date": orm_rate.date, "rate": orm_rate.rate}
    if orm_rate.source:
        record["source"] = orm_rate.source
    return record


def exchange_rate_to_orm(record: dict[str, Any], position: int) -> ORMExchangeRate:
    """Convert a rate record to a SQLAlchemy ExchangeRate model."""
    rate = record.get("rate")
    return ORMExchangeRate(
        position=position,
        date=_text(record.get("date")),
        rate=None if rate is None else float(rate),
        source=record.get("source"),
    )


def account_to_record(orm_account: ORMAccount) -> dict[str, Any]:
    """Convert SQLAlchemy Account model to an account record."""
    return {
        "id": orm_account.account_id,
        "name": orm_account.name,
        "type": orm_account.type,
        "currency": orm_account.currency,
        "opened": orm_account.opened,
        "closed": bool(orm_account.closed),
        "closedDate": orm_account.closed_date,
        "description": orm_account.description or "",
        "metadata": _json_loads(orm_account.metadata_json, {}),
    }


def account_to_orm(record: dict[str, Any]) -> ORMAccount:
    """Convert an account record to a SQLAlchemy Account model."""
    return ORMAccount(
        account_id=record.get("id"),
        name=record.get("name"),
        type=record.get("type"),
        currency=record.get("currency"),
        opened=_text(record.get("opened")),
        closed=bool(record.get("closed")),
        closed_date=_text(record.get("closedDate")),
        description=record.get("description"),
        metadata_json=_json_dumps(record.get("metadata")),
    )


def posting_to_record(orm_posting: ORMPosting) -> dict[str, Any]:
    """Convert SQLAlchemy Posting model to a posting record."""
    record: dict[str, Any] = {
        "accountId": orm_posting.account_id,
        "amount": _amount_from_text(orm_posting.amount),
        "currency": orm_posting.currency,
    }
    if orm_posting.fx_rate is not None or orm_posting.fx_equivalent_amount is not None:
        fx: dict[str, Any] = {"rate": orm_posting.fx_rate}
        if orm_posting.fx_equivalent_amount is not None:
            fx["equivalentAmount"] = _amount_from_text(orm_posting.fx_equivalent_amount)
        record["exchangeRate"] = fx
    return record


def posting_to_orm(record: dict[str, Any], position: int) -> ORMPosting:
    """Convert a posting record to a SQLAlchemy Posting model."""
    fx = record.get("exchangeRate") or {}
    rate = fx.get("rate")
    return ORMPosting(
        position=position,
        account_id=record.get("accountId"),
        amount=_amount_to_text(record.get("amount")),
        currency=record.get("currency"),
        fx_rate=None if rate is None else float(rate),
        fx_equivalent_amount=_amount_to_text(fx.get("equivalentAmount")),
    )


def transaction_to_record(orm_transaction: ORMTransaction) -> dict[str, Any]:
    """Convert SQLAlchemy Transaction model to a transaction record."""
    return {
        "id": orm_transaction.transaction_id,
        "date": orm_transaction.date,
        "description": orm_transaction.description,
        "payee": orm_transaction.payee or "",
        "tags": _json_loads(orm_transaction.tags_json, []),
        "posting": [posting_to_record(p) for p in orm_transaction.postings],
        "metadata": _json_loads(orm_transaction.metadata_json, {}),
    }


def transaction_to_orm(record: dict[str, Any], position: int) -> ORMTransaction:
    """Convert a transaction record to a SQLAlchemy Transaction model."""
    return ORMTransaction(
        transaction_id=record.get("id"),
        position=position,
        date=_text(record.get("date")),
        description=record.get("description"),
        payee=record.get("payee"),
        tags_json=json.dumps(list(record.get("tags") or [])),
        metadata_json=_json_dumps(record.get("metadata")),
        postings=[
            posting_to_orm(posting, index)
            for index, posting in enumerate(record.get("posting") or [])
        ],
    )
