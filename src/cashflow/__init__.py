"""Double-entry ledger with currency, account and transaction validation."""

__version__ = "0.1.0"


def __getattr__(name):
    # The CLI pulls in click and SQLAlchemy; load it only on demand.
    if name == "main":
        from cashflow.cli.main import main
        return main
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
