"""
Unit tests for upload checks and the ingest service.
"""

import pytest

from usage_insights.config.loader import IngestConfig
from usage_insights.core.errors import (
    ConsistencyError,
    EmptyDataError,
    UploadError,
)
from usage_insights.core.ingest import (
    MAX_FILE_SIZE,
    IngestMode,
    IngestService,
    decode_upload,
    validate_csv_extension,
    validate_file_size,
)
from usage_insights.storage.repository import UsageStore


class TestUploadChecks:
    """Test pre-parse checks on uploaded files."""

    def test_default_limit_is_100mb(self):
        assert MAX_FILE_SIZE == 100 * 1024 * 1024

    def test_size_at_limit_passes(self):
        validate_file_size(MAX_FILE_SIZE)

    def test_size_over_limit_fails(self):
        with pytest.raises(UploadError, match="exceeds maximum allowed size"):
            validate_file_size(MAX_FILE_SIZE + 1)

    def test_custom_limit(self):
        with pytest.raises(UploadError):
            validate_file_size(11, max_size=10)

    @pytest.mark.parametrize("filename", ["usage.csv", "USAGE.CSV", "a.b.Csv"])
    def test_csv_extension_passes(self, filename):
        validate_csv_extension(filename)

    @pytest.mark.parametrize("filename", ["usage.txt", "usage", "csv", "usage.csv.gz"])
    def test_other_extensions_fail(self, filename):
        with pytest.raises(UploadError, match="Only CSV files are allowed"):
            validate_csv_extension(filename)

    def test_decode_utf8(self):
        assert decode_upload("Modèle".encode("utf-8")) == "Modèle"

    def test_decode_strips_bom(self):
        assert decode_upload(b"\xef\xbb\xbfDate") == "Date"

    def test_decode_rejects_invalid_utf8(self):
        with pytest.raises(UploadError, match="UTF-8"):
            decode_upload(b"\xff\xfe\x00bad")


class TestIngestService:
    """Test parse, validate and store as one operation."""

    @pytest.fixture
    def store(self):
        return UsageStore()

    @pytest.fixture
    def service(self, store):
        return IngestService(store)

    def test_replace_mode_stores_records(self, service, store, sample_csv):
        result = service.ingest("usage.csv", sample_csv.encode("utf-8"))

        assert result.mode is IngestMode.REPLACE
        assert result.parsed_count == 2
        assert result.stored_count == 2
        assert result.summary.total_cost == pytest.approx(0.20)
        assert len(store) == 2

    def test_replace_discards_previous_data(self, service, store, sample_csv, csv_header):
        service.ingest("first.csv", sample_csv.encode("utf-8"))
        other = csv_header + "\n2024-02-01T10:00:00Z,Included,auto,No,1,1,1,1,4,0.01\n"

        result = service.ingest("second.csv", other.encode("utf-8"))

        assert result.stored_count == 1
        assert store.snapshot()[0].date == "2024-02-01T10:00:00Z"

    def test_append_mode_merges_and_dedups(self, service, store, sample_csv, csv_header):
        service.ingest("first.csv", sample_csv.encode("utf-8"))
        extra = sample_csv + "2024-01-02T10:00:00Z,Included,auto,No,1,1,1,1,4,0.01\n"

        result = service.ingest("second.csv", extra.encode("utf-8"), mode=IngestMode.APPEND)

        assert result.parsed_count == 3
        assert result.stored_count == 3
        assert len(store) == 3
        assert result.summary.total_cost == pytest.approx(0.21)

    def test_failed_upload_leaves_store_untouched(self, service, store, sample_csv, csv_header):
        service.ingest("first.csv", sample_csv.encode("utf-8"))
        bad = csv_header + "\n2024-01-03T10:00:00Z,Included,auto,No,1,1,1,1,99,0.01\n"

        with pytest.raises(ConsistencyError):
            service.ingest("bad.csv", bad.encode("utf-8"), mode=IngestMode.APPEND)

        assert len(store) == 2

    def test_rejects_wrong_extension_before_parsing(self, service, store):
        with pytest.raises(UploadError):
            service.ingest("usage.json", b"not even csv")
        assert len(store) == 0

    def test_rejects_oversized_file(self, store, sample_csv):
        service = IngestService(store, config=IngestConfig(max_file_size_mb=0.00001))

        with pytest.raises(UploadError, match="exceeds"):
            service.ingest("usage.csv", sample_csv.encode("utf-8"))

    def test_configured_extensions(self, store, sample_csv):
        service = IngestService(store, config=IngestConfig(allowed_extensions=(".txt",)))

        result = service.ingest("usage.txt", sample_csv.encode("utf-8"))

        assert result.parsed_count == 2

    def test_header_only_file_fails(self, service, csv_header):
        with pytest.raises(EmptyDataError):
            service.ingest("usage.csv", (csv_header + "\n").encode("utf-8"))

    def test_load_does_not_store(self, service, store, sample_csv):
        records = service.load("usage.csv", sample_csv.encode("utf-8"))

        assert len(records) == 2
        assert len(store) == 0
