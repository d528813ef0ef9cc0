"""
Tests for the stored blob parser
"""
from kwikpass.core.parsing import parse_stored_blob


class TestParseStoredBlob:
    """Test JSON and "{k=v}" blob parsing"""

    def test_json_object(self):
        assert parse_stored_blob('{"phone": "9876543210", "email": null}') == {
            "phone": "9876543210",
            "email": None,
        }

    def test_key_value_form(self):
        """Test the platform map string form"""
        blob = "{phone=9876543210, email=jane@example.com, state=null}"

        assert parse_stored_blob(blob) == {
            "phone": "9876543210",
            "email": "jane@example.com",
            "state": None,
        }

    def test_key_value_form_splits_on_first_equals(self):
        blob = "{gk-app-domain=shop.example.com, token=abc==}"

        assert parse_stored_blob(blob)["token"] == "abc=="

    def test_nested_values_stay_whole(self):
        """Test that commas inside nested braces do not split"""
        blob = "{metrics={a=1, b=2}, name=Shop}"

        result = parse_stored_blob(blob)

        assert result["metrics"] == "{a=1, b=2}"
        assert result["name"] == "Shop"

    def test_empty_inputs(self):
        assert parse_stored_blob(None) == {}
        assert parse_stored_blob("") == {}
        assert parse_stored_blob("{}") == {}

    def test_unparseable_returns_empty(self):
        """Test that garbage yields an empty mapping instead of raising"""
        assert parse_stored_blob("not a map at all") == {}
        assert parse_stored_blob("[1, 2, 3]") == {}
