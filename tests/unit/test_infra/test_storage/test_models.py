"""Unit tests for gateway request/result records."""

from datetime import UTC, datetime, timedelta

import pytest

from storage_gateway.infra.storage.exceptions import InvalidRequestError
from storage_gateway.infra.storage.models import (
    BucketRef,
    DownloadResult,
    ObjectRef,
    PresignedUrlGrant,
)


class TestRefs:
    def test_object_ref_keeps_slashes_in_key(self):
        ref = ObjectRef.of("docs", "2024/q1/report.csv")

        assert ref.bucket == BucketRef("docs")
        assert ref.key == "2024/q1/report.csv"
        assert str(ref) == "docs/2024/q1/report.csv"

    @pytest.mark.parametrize("name", ["", "   "])
    def test_blank_bucket_rejected(self, name):
        with pytest.raises(InvalidRequestError):
            BucketRef(name)

    def test_empty_key_rejected(self):
        with pytest.raises(InvalidRequestError):
            ObjectRef.of("docs", "")


class TestResults:
    def test_grant_expiry(self):
        issued = datetime(2024, 1, 15, 10, 30, tzinfo=UTC)
        grant = PresignedUrlGrant(ref=ObjectRef.of("b", "k"), url="u", issued_at=issued)

        assert grant.expires_in == timedelta(hours=24)
        assert grant.expires_at == datetime(2024, 1, 16, 10, 30, tzinfo=UTC)

    def test_download_result_size(self):
        result = DownloadResult(ref=ObjectRef.of("b", "k"), data=b"12345")

        assert result.size_bytes == 5
        assert result.content_type == "application/octet-stream"
