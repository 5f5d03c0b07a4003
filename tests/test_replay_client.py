"""Tests for the sc2replaystats API client."""

from datetime import datetime, timedelta, timezone

import pytest
import requests
import responses

from replay_sync.sync.errors import (
    MarkerUnavailable,
    QueueIdMalformed,
    ReplayReadError,
    ReplayTransportError,
    ResponseMalformed,
    UploadRejected,
)
from replay_sync.sync.replay_client import (
    REPLAY_BUFFER,
    UPLOADER_IDENTIFIER,
    ReplayMarker,
    ReplayStatsClient,
    UploadOutcome,
)

API_URL = "https://api.example.com"
LAST_REPLAY_URL = f"{API_URL}/account/last-replay"
REPLAY_URL = f"{API_URL}/replay"


class TestReplayMarker:
    """Tests for ReplayMarker parsing."""

    def test_from_dict_rfc3339(self):
        marker = ReplayMarker.from_dict({"replay_date": "2026-03-01T18:30:00+01:00"})

        assert marker.has_replay
        assert marker.replay_time == datetime(2026, 3, 1, 17, 30, tzinfo=timezone.utc)

    def test_from_dict_z_suffix(self):
        marker = ReplayMarker.from_dict({"replay_date": "2026-03-01T17:30:00Z"})
        assert marker.replay_time.utcoffset() == timedelta(0)

    def test_cutoff_subtracts_buffer(self):
        marker = ReplayMarker.from_dict({"replay_date": "2026-03-01T17:30:00Z"})

        assert REPLAY_BUFFER == timedelta(minutes=5)
        assert marker.cutoff == datetime(2026, 3, 1, 17, 25, tzinfo=timezone.utc)

    @pytest.mark.parametrize("data", [{}, {"replay_date": ""}, {"replay_date": None}])
    def test_from_dict_no_replay(self, data):
        marker = ReplayMarker.from_dict(data)

        assert marker.has_replay is False
        assert marker.cutoff is None

    @pytest.mark.parametrize(
        "raw",
        [
            "yesterday",
            "2026-03-01T17:30:00",
            "2026-03-01 17:30:00Z",
            "20260301T173000Z",
            "2026-03-01T17:30:00Z\n",
        ],
    )
    def test_from_dict_rejects_non_rfc3339(self, raw):
        with pytest.raises(MarkerUnavailable, match="RFC3339"):
            ReplayMarker.from_dict({"replay_date": raw})

    def test_from_dict_impossible_date(self):
        with pytest.raises(MarkerUnavailable, match="Cannot parse"):
            ReplayMarker.from_dict({"replay_date": "2026-13-45T17:30:00Z"})

    @pytest.mark.parametrize("raw", [0, False, 1700000000, ["2026-03-01T17:30:00Z"]])
    def test_from_dict_non_string_date(self, raw):
        with pytest.raises(MarkerUnavailable, match="Unexpected replay_date"):
            ReplayMarker.from_dict({"replay_date": raw})

    def test_from_dict_lowercase_z(self):
        marker = ReplayMarker.from_dict({"replay_date": "2026-03-01t17:30:00z"})
        assert marker.replay_time == datetime(2026, 3, 1, 17, 30, tzinfo=timezone.utc)


class TestUploadOutcome:
    def test_success(self):
        assert UploadOutcome(200, "42", 42).success is True

    def test_no_queue_id(self):
        assert UploadOutcome(200).success is False


class TestReplayStatsClient:
    """Tests for ReplayStatsClient."""

    def setup_method(self):
        """Set up test fixtures."""
        self.client = ReplayStatsClient(
            api_url=API_URL,
            token="secret-token",
            account_hash="abc123",
        )

    def teardown_method(self):
        """Clean up."""
        self.client.close()

    def _replay(self, tmp_path, content=b"MPQ\x1a replay"):
        path = tmp_path / "game.SC2Replay"
        path.write_bytes(content)
        return path

    def test_headers_pass_token_verbatim(self):
        headers = self.client._get_headers()

        assert headers["Authorization"] == "secret-token"
        assert headers["Accept"] == "application/json"

    def test_headers_without_token(self):
        client = ReplayStatsClient(api_url=API_URL)
        assert "Authorization" not in client._get_headers()
        client.close()

    @responses.activate
    def test_get_last_replay(self):
        responses.add(
            responses.GET,
            LAST_REPLAY_URL,
            json={"replay_date": "2026-03-01T17:30:00Z", "map": "Alcyone LE"},
            status=200,
        )

        marker = self.client.get_last_replay()

        assert marker.replay_time == datetime(2026, 3, 1, 17, 30, tzinfo=timezone.utc)
        assert responses.calls[0].request.headers["Authorization"] == "secret-token"

    @responses.activate
    def test_get_last_replay_none_recorded(self):
        responses.add(responses.GET, LAST_REPLAY_URL, json={}, status=200)

        marker = self.client.get_last_replay()

        assert marker.has_replay is False

    @responses.activate
    def test_get_last_replay_non_200(self):
        responses.add(responses.GET, LAST_REPLAY_URL, body="unauthorized", status=401)

        with pytest.raises(MarkerUnavailable) as exc_info:
            self.client.get_last_replay()

        assert exc_info.value.status_code == 401
        assert exc_info.value.body == "unauthorized"

    @responses.activate
    def test_get_last_replay_not_json(self):
        responses.add(responses.GET, LAST_REPLAY_URL, body="<html></html>", status=200)

        with pytest.raises(MarkerUnavailable, match="not JSON"):
            self.client.get_last_replay()

    @responses.activate
    def test_get_last_replay_json_list(self):
        responses.add(responses.GET, LAST_REPLAY_URL, json=[1, 2], status=200)

        with pytest.raises(MarkerUnavailable, match="not a JSON object"):
            self.client.get_last_replay()

    @responses.activate
    def test_get_last_replay_connection_error(self):
        responses.add(
            responses.GET,
            LAST_REPLAY_URL,
            body=requests.exceptions.ConnectionError("Connection refused"),
        )

        with pytest.raises(ReplayTransportError, match="Cannot connect"):
            self.client.get_last_replay()

    @responses.activate
    def test_get_last_replay_timeout(self):
        responses.add(
            responses.GET,
            LAST_REPLAY_URL,
            body=requests.exceptions.Timeout("slow"),
        )

        with pytest.raises(ReplayTransportError, match="timed out"):
            self.client.get_last_replay()

    @responses.activate
    def test_upload_replay_success(self, tmp_path):
        responses.add(responses.POST, REPLAY_URL, json={"replay_queue_id": "42"}, status=200)

        outcome = self.client.upload_replay(self._replay(tmp_path))

        assert outcome == UploadOutcome(status_code=200, queue_id_raw="42", queue_id=42)
        assert outcome.success

    @responses.activate
    def test_upload_replay_multipart_body(self, tmp_path):
        responses.add(responses.POST, REPLAY_URL, json={"replay_queue_id": "7"}, status=200)

        self.client.upload_replay(self._replay(tmp_path, b"replay-bytes"))

        request = responses.calls[0].request
        assert request.headers["Authorization"] == "secret-token"
        assert request.headers["Content-Type"].startswith("multipart/form-data; boundary=")
        body = request.body
        assert b'name="upload_method"' in body
        assert UPLOADER_IDENTIFIER.encode() in body
        assert b'name="hashkey"' in body
        assert b"abc123" in body
        assert b'name="replay_file"; filename="game.SC2Replay"' in body
        assert b"replay-bytes" in body

    @pytest.mark.parametrize("raw", ["abc", "4_2", " 42\n", "\u0664\u0662", "", "42.0", 42])
    @responses.activate
    def test_upload_replay_malformed_queue_id(self, tmp_path, raw):
        responses.add(responses.POST, REPLAY_URL, json={"replay_queue_id": raw}, status=200)

        with pytest.raises(QueueIdMalformed) as exc_info:
            self.client.upload_replay(self._replay(tmp_path))

        assert exc_info.value.raw == raw

    @responses.activate
    def test_upload_replay_signed_queue_id(self, tmp_path):
        responses.add(responses.POST, REPLAY_URL, json={"replay_queue_id": "+42"}, status=200)

        assert self.client.upload_replay(self._replay(tmp_path)).queue_id == 42

    @responses.activate
    def test_upload_replay_missing_queue_id(self, tmp_path):
        responses.add(responses.POST, REPLAY_URL, json={"status": "ok"}, status=200)

        with pytest.raises(QueueIdMalformed):
            self.client.upload_replay(self._replay(tmp_path))

    @responses.activate
    def test_upload_replay_rejected(self, tmp_path):
        responses.add(responses.POST, REPLAY_URL, body="forbidden", status=403)

        with pytest.raises(UploadRejected) as exc_info:
            self.client.upload_replay(self._replay(tmp_path))

        assert exc_info.value.status_code == 403
        assert exc_info.value.body == "forbidden"

    @responses.activate
    def test_upload_replay_rejected_json_body_not_parsed(self, tmp_path):
        responses.add(
            responses.POST, REPLAY_URL, json={"replay_queue_id": "42"}, status=500
        )

        with pytest.raises(UploadRejected) as exc_info:
            self.client.upload_replay(self._replay(tmp_path))

        assert exc_info.value.body == '{"replay_queue_id": "42"}'

    @responses.activate
    def test_upload_replay_undecodable_writes_dump(self, tmp_path):
        dump = tmp_path / "dump.out"
        client = ReplayStatsClient(api_url=API_URL, token="t", account_hash="h", dump_path=dump)
        responses.add(responses.POST, REPLAY_URL, body=b"<html>502</html>", status=200)

        with pytest.raises(ResponseMalformed):
            client.upload_replay(self._replay(tmp_path))

        assert dump.read_bytes() == b"<html>502</html>"
        client.close()

    @responses.activate
    def test_upload_replay_dump_failure_keeps_error(self, tmp_path):
        dump = tmp_path / "missing-dir" / "dump.out"
        client = ReplayStatsClient(api_url=API_URL, token="t", account_hash="h", dump_path=dump)
        responses.add(responses.POST, REPLAY_URL, body=b"not json", status=200)

        with pytest.raises(ResponseMalformed):
            client.upload_replay(self._replay(tmp_path))

        assert not dump.exists()
        client.close()

    def test_upload_replay_missing_file(self, tmp_path):
        with pytest.raises(ReplayReadError):
            self.client.upload_replay(tmp_path / "gone.SC2Replay")

    def test_context_manager_closes_session(self):
        with ReplayStatsClient(api_url=API_URL) as client:
            assert client._session is not None
        assert client._session is None
