import shutil
from pathlib import Path

import pytest

from backend import sessions, storage

TEST_DATA_DIR = Path("data-tests")


@pytest.fixture(autouse=True)
def clean_test_data():
    """Wipe and re-init data-tests/ before every test."""
    if TEST_DATA_DIR.exists():
        shutil.rmtree(TEST_DATA_DIR)
    storage.init_storage(TEST_DATA_DIR)
    sessions.clear()
    yield
    # leave data-tests around after tests for inspection; CI can ignore it


@pytest.fixture
def make_doc():
    """Factory for remote typed-value documents.

    make_doc("m1", "2024-03-01T19:00:00Z", text="Hi", name="Aldric",
             dice={"result": "1D100 > 5", "critical": True})
    """

    def _make(
        msg_id: str,
        create_time: str | None = "2024-03-01T19:00:00Z",
        text: str | None = None,
        name: str | None = None,
        color: str | None = None,
        dice: dict | None = None,
        **string_fields: str,
    ) -> dict:
        fields: dict = {}
        if text is not None:
            fields["text"] = {"stringValue": text}
        if name is not None:
            fields["name"] = {"stringValue": name}
        if color is not None:
            fields["color"] = {"stringValue": color}
        for key, value in string_fields.items():
            fields[key] = {"stringValue": value}
        if dice is not None:
            roll = {
                key: {"booleanValue": value} if isinstance(value, bool) else {"stringValue": value}
                for key, value in dice.items()
            }
            fields["extend"] = {"mapValue": {"fields": {
                "roll": {"mapValue": {"fields": roll}},
            }}}
        doc = {
            "name": f"projects/p/databases/(default)/documents/rooms/room1/messages/{msg_id}",
            "fields": fields,
        }
        if create_time is not None:
            doc["createTime"] = create_time
            doc["updateTime"] = create_time
        return doc

    return _make
