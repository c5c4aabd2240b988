"""File-level structural validation of a whole record set."""

import json
import logging
from typing import Any, Mapping

from cashflow.domain import codes
from cashflow.domain.account_rules import validate_account_set
from cashflow.domain.currency_rules import validate_currency_set
from cashflow.domain.entities import (
    ERROR,
    INFO,
    WARNING,
    Diagnostic,
    RecordSetReport,
    RecordStats,
)
from cashflow.domain.transaction_rules import validate_transaction_set
from cashflow.utils.formats import is_blank, is_currency_code, is_iso8601, is_semver

logger = logging.getLogger(__name__)

REQUIRED_SECTIONS = ("metadata", "currency")


def _absent(value: Any) -> bool:
    """True for a missing or empty scalar section. Empty lists count as present."""
    if value is None or value is False:
        return True
    if isinstance(value, (list, dict)):
        return False
    return not value


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _count(value: Any) -> int:
    return len(value) if isinstance(value, list) else 0


def compute_stats(document: Mapping[str, Any]) -> RecordStats:
    """Count the entries of each list section (0 when absent or not a list)."""
    return RecordStats(
        currencies=_count(document.get("currency")),
        accounts=_count(document.get("account")),
        transactions=_count(document.get("transaction")),
        budgets=_count(document.get("budget")),
        recurring=_count(document.get("recurring")),
    )


def validate_record_set(document: Any, strict: bool = False) -> RecordSetReport:
    """Validate the structure of a loaded record set.

    By default the currency and account sections only get reduced checks
    (code format and non-blank names). With strict=True the full currency,
    account and transaction rule engines run instead.

    Args:
        document: Parsed record set
        strict: Run the full rule engines on every section

    Returns:
        RecordSetReport with diagnostics, stats and a printable report
    """
    document = _as_mapping(document)
    errors: list[Diagnostic] = []
    warnings: list[Diagnostic] = []
    infos: list[Diagnostic] = []

    version = document.get("version")
    if _absent(version):
        errors.append(
            Diagnostic(
                code=codes.FILE_003,
                severity=ERROR,
                message="The 'version' property is required.",
                suggestion='Add version = "1.0.0" at the top of the file.',
            )
        )
    elif not is_semver(version):
        errors.append(
            Diagnostic(
                code=codes.FILE_004,
                severity=ERROR,
                message=f'The version must follow semver (X.Y.Z). Found: "{version}"',
                suggestion="Use an X.Y.Z version (e.g. 1.0.0, 2.1.3).",
            )
        )

    missing = [section for section in REQUIRED_SECTIONS if _absent(document.get(section))]
    if missing:
        errors.append(
            Diagnostic(
                code=codes.FILE_005,
                severity=ERROR,
                message=f"Missing required sections: {', '.join(missing)}",
                suggestion="Add the missing sections.",
            )
        )

    metadata = document.get("metadata")
    if not _absent(metadata):
        errors.extend(_check_metadata(_as_mapping(metadata)))

    if strict:
        findings = _run_engines(document)
        errors.extend(d for d in findings if d.severity == ERROR)
        warnings.extend(d for d in findings if d.severity == WARNING)
        infos.extend(d for d in findings if d.severity == INFO)
    else:
        if not _absent(document.get("currency")):
            errors.extend(_check_currency_codes(document.get("currency")))
        if not _absent(document.get("account")):
            errors.extend(_check_account_names(document.get("account")))

    stats = compute_stats(document)
    report = build_report(document, errors, warnings, infos, stats)
    logger.debug(
        "Record set validated (strict=%s): %d errors, %d warnings",
        strict,
        len(errors),
        len(warnings),
    )
    return RecordSetReport(
        valid=not errors,
        errors=errors,
        warnings=warnings,
        infos=infos,
        stats=stats,
        report=report,
    )


def _run_engines(document: Mapping[str, Any]) -> list[Diagnostic]:
    currencies = document.get("currency")
    accounts = document.get("account")
    metadata = document.get("metadata")
    findings = validate_currency_set(currencies, _as_mapping(metadata) if metadata else None)
    findings.extend(validate_account_set(accounts, currencies if isinstance(currencies, list) else []))
    findings.extend(
        validate_transaction_set(
            document.get("transaction"),
            accounts if isinstance(accounts, list) else [],
            currencies if isinstance(currencies, list) else [],
        )
    )
    return findings


def _check_metadata(metadata: Mapping[str, Any]) -> list[Diagnostic]:
    errors = []
    for code, key in ((codes.META_001, "created"), (codes.META_002, "lastModified")):
        value = metadata.get(key)
        if _absent(value):
            errors.append(
                Diagnostic(
                    code=code,
                    severity=ERROR,
                    message=f"The 'metadata.{key}' property is required.",
                    suggestion="Add a date in ISO 8601 format.",
                )
            )
        elif not is_iso8601(value):
            errors.append(
                Diagnostic(
                    code=code,
                    severity=ERROR,
                    message=f"Invalid date format for '{key}': \"{value}\". Dates must follow ISO 8601.",
                    suggestion="Use ISO 8601 (e.g. 2025-01-01T00:00:00Z).",
                )
            )
    return errors


def _check_currency_codes(currencies: Any) -> list[Diagnostic]:
    if not isinstance(currencies, list):
        return [
            Diagnostic(
                code=codes.CUR_001,
                severity=ERROR,
                message="The currency section must be a list.",
                suggestion="Use [[currency]] tables to define currencies.",
            )
        ]

    errors = []
    for index, currency in enumerate(currencies):
        code = _as_mapping(currency).get("code")
        if _absent(code):
            errors.append(
                Diagnostic(
                    code=codes.CUR_001,
                    severity=ERROR,
                    message=f"Currency #{index + 1}: the code is required.",
                    suggestion="Add an ISO 4217 code (e.g. CHF, EUR, USD).",
                )
            )
        elif not is_currency_code(code):
            errors.append(
                Diagnostic(
                    code=codes.CUR_001,
                    severity=ERROR,
                    message=f'Invalid currency code: "{code}"',
                    suggestion="Currency codes are 3 uppercase letters (ISO 4217).",
                )
            )
    return errors


def _check_account_names(accounts: Any) -> list[Diagnostic]:
    if not isinstance(accounts, list):
        return []
    return [
        Diagnostic(
            code=codes.ACC_003,
            severity=ERROR,
            message=f"Account #{index + 1}: the name is required.",
            suggestion="Add a non-empty account name.",
        )
        for index, account in enumerate(accounts)
        if is_blank(_as_mapping(account).get("name"))
    ]


def _document_size(document: Mapping[str, Any]) -> int:
    return len(json.dumps(document, separators=(",", ":"), ensure_ascii=False, default=str))


def build_report(
    document: Mapping[str, Any],
    errors: list[Diagnostic],
    warnings: list[Diagnostic],
    infos: list[Diagnostic],
    stats: RecordStats,
) -> str:
    """Render a human-readable validation report."""
    lines = [
        "Validation report",
        "",
        f"Version: {document.get('version') or 'N/A'}",
        f"Size: {_document_size(document)} bytes",
        "",
    ]

    if not errors:
        lines.extend(
            [
                "✓ Valid structure",
                "✓ Correct version",
                "✓ All sections present",
                f"✓ {stats.currencies} currency(ies)",
                f"✓ {stats.accounts} account(s)",
                f"✓ {stats.transactions} transaction(s)",
                f"✓ {stats.budgets} budget(s)",
                f"✓ {stats.recurring} recurring entry(ies)",
            ]
        )
    else:
        lines.append(f"✗ Critical errors ({len(errors)})")
        lines.extend(f"  [{d.code}] {d.message}" for d in errors)

    if warnings:
        lines.extend(["", f"! Warnings ({len(warnings)})"])
        lines.extend(f"  [{d.code}] {d.message}" for d in warnings)

    if infos:
        lines.extend(["", f"i Information ({len(infos)})"])
        lines.extend(f"  [{d.code}] {d.message}" for d in infos)

    lines.append("")
    if errors:
        lines.append(f"✗ The file cannot be loaded because of {len(errors)} critical error(s).")
    else:
        lines.append("✓ The file is valid and ready to load.")
    return "\n".join(lines)
