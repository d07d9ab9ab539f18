import os
import tempfile

# Settings are read at import time; point the default store somewhere harmless
os.environ.setdefault("DB_PATH", os.path.join(tempfile.mkdtemp(), "journal.db"))
os.environ["API_KEY"] = ""

import pytest

from backend.models.trade import Trade


def make_trade(entry_date="2024-01-01", pnl=0.0, **overrides) -> Trade:
    fields = {
        "id": overrides.pop("id", f"t-{entry_date}-{pnl}"),
        "user_id": "u1",
        "symbol": "NIFTY",
        "entry_date": entry_date,
        "pnl": pnl,
        "status": "CLOSED",
    }
    fields.update(overrides)
    return Trade(**fields)


@pytest.fixture
def trade_factory():
    return make_trade


@pytest.fixture
def scenario_trades():
    return [
        make_trade("2024-01-01", 1000),
        make_trade("2024-01-05", -400),
        make_trade("2024-01-10", 1000),
    ]


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    from backend import database
    monkeypatch.setattr(database, "DB_PATH", str(tmp_path / "journal.db"))
    database.init_db()
    return database
