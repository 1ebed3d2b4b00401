"""Tests for the upload step's subtitle."""

from config.settings import Settings
from dashboard.components.upload_view import upload_hint


class TestUploadHint:
    def test_default_settings_name_csv_only(self):
        hint = upload_hint(Settings(_env_file=None).ALLOWED_EXTENSIONS)
        assert hint == "Supported file types: CSV."
        assert "Excel" not in hint
        assert "Google Sheets" not in hint

    def test_lists_every_configured_extension(self):
        assert upload_hint([".csv", ".tsv"]) == "Supported file types: CSV, TSV."
