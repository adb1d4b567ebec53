"""
Integration tests for the manifest endpoint.

Tests end-to-end client polls:
- Manifest responses and protocol headers
- noUpdateAvailable and rollBackToEmbedded directives
- Protocol 0 behaviour
- Code signing
- Download tracking
"""

import pytest

from backend.src.config.settings import get_settings
from backend.src.models import Tracking
from backend.src.services.protocol_service import dump_json


EMBEDDED_ID = "9a1b2c3d-4e5f-5a6b-8c7d-0e1f2a3b4c5d"


def poll_headers(protocol="1", platform="ios", runtime_version="1.0.0", **extra):
    headers = {
        "expo-platform": platform,
        "expo-runtime-version": runtime_version,
    }
    if protocol is not None:
        headers["expo-protocol-version"] = protocol
    headers.update(extra)
    return headers


class TestManifestAPI:
    """Integration tests for GET /api/manifest"""

    def test_manifest_response(self, test_client, make_bundle, publish_bundle, parse_response):
        """Test a poll for a published bundle returns manifest and extensions parts"""
        upload = publish_bundle(make_bundle())

        response = test_client.get("/api/manifest", headers=poll_headers())

        assert response.status_code == 200
        assert response.headers["expo-protocol-version"] == "1"
        assert response.headers["expo-sfv-version"] == "0"
        assert response.headers["cache-control"] == "private, max-age=0"

        parts = parse_response(response)
        assert list(parts) == ["manifest", "extensions"]
        manifest = parts["manifest"][1]
        assert manifest["id"] == upload.update_id
        assert manifest["runtimeVersion"] == "1.0.0"
        assert manifest["launchAsset"]["contentType"] == "application/javascript"
        assert manifest["launchAsset"]["url"].startswith(f"{get_settings().hostname}/api/assets?")

    def test_query_parameter_fallback(self, test_client, make_bundle, publish_bundle, parse_response):
        """Test platform and runtime version may be passed as query parameters"""
        publish_bundle(make_bundle())

        response = test_client.get(
            "/api/manifest",
            params={"platform": "android", "runtime-version": "1.0.0"},
            headers={"expo-protocol-version": "1"},
        )

        assert response.status_code == 200
        assert "manifest" in parse_response(response)

    def test_same_manifest_on_repeat_polls(self, test_client, make_bundle, publish_bundle, parse_response):
        """Test two polls for the same bundle return the same manifest"""
        publish_bundle(make_bundle())

        first = parse_response(test_client.get("/api/manifest", headers=poll_headers()))
        second = parse_response(test_client.get("/api/manifest", headers=poll_headers()))

        assert first["manifest"][1] == second["manifest"][1]

    def test_asset_urls_resolve(self, test_client, make_bundle, publish_bundle, parse_response, bundle_layout):
        """Test every asset URL in a manifest is served by the asset endpoint"""
        publish_bundle(make_bundle())
        manifest = parse_response(test_client.get("/api/manifest", headers=poll_headers()))["manifest"][1]

        hostname = get_settings().hostname
        for asset in manifest["assets"] + [manifest["launchAsset"]]:
            response = test_client.get(asset["url"][len(hostname):])
            assert response.status_code == 200
            assert response.headers["content-type"].startswith(asset["contentType"])


class TestNoUpdateDirective:

    def test_current_update(self, test_client, make_bundle, publish_bundle, parse_response, test_db_session):
        """Test a client already on the latest update gets noUpdateAvailable and no download is recorded"""
        upload = publish_bundle(make_bundle())

        response = test_client.get(
            "/api/manifest",
            headers=poll_headers(**{"expo-current-update-id": upload.update_id}),
        )

        assert response.status_code == 200
        assert parse_response(response)["directive"][1] == {"type": "noUpdateAvailable"}
        assert test_db_session.query(Tracking).count() == 0

    def test_nothing_published_v1(self, test_client, parse_response):
        """Test protocol 1 clients get noUpdateAvailable when nothing is published"""
        response = test_client.get("/api/manifest", headers=poll_headers(runtime_version="9.9.9"))

        assert response.status_code == 200
        assert parse_response(response)["directive"][1] == {"type": "noUpdateAvailable"}

    def test_nothing_published_v0(self, test_client):
        """Test protocol 0 clients get 404 when nothing is published"""
        response = test_client.get("/api/manifest", headers=poll_headers(protocol=None))

        assert response.status_code == 404
        assert response.json() == {"error": "No update found for runtime version: 1.0.0"}

    def test_v0_reserved_current_update(self, test_client, make_bundle, publish_bundle, parse_response):
        """Test protocol 0 clients are re-served the manifest they already run"""
        upload = publish_bundle(make_bundle())

        response = test_client.get(
            "/api/manifest",
            headers=poll_headers(protocol="0", **{"expo-current-update-id": upload.update_id}),
        )

        assert response.status_code == 200
        assert response.headers["expo-protocol-version"] == "0"
        assert parse_response(response)["manifest"][1]["id"] == upload.update_id


class TestRollbackDirective:

    def test_rollback(self, test_client, make_bundle, publish_bundle, parse_response):
        """Test a rollback bundle yields rollBackToEmbedded with its commit time"""
        publish_bundle(make_bundle(rollback=True))

        response = test_client.get(
            "/api/manifest",
            headers=poll_headers(**{"expo-embedded-update-id": EMBEDDED_ID}),
        )

        assert response.status_code == 200
        assert parse_response(response)["directive"][1] == {
            "type": "rollBackToEmbedded",
            "parameters": {"commitTime": "2025-02-01T08:00:00.000Z"},
        }

    def test_rollback_when_on_embedded(self, test_client, make_bundle, publish_bundle, parse_response):
        """Test a client already on its embedded build gets noUpdateAvailable"""
        publish_bundle(make_bundle(rollback=True))

        response = test_client.get(
            "/api/manifest",
            headers=poll_headers(**{
                "expo-embedded-update-id": EMBEDDED_ID,
                "expo-current-update-id": EMBEDDED_ID,
            }),
        )

        assert parse_response(response)["directive"][1] == {"type": "noUpdateAvailable"}

    def test_rollback_on_v0(self, test_client, make_bundle, publish_bundle):
        """Test rollbacks are rejected for protocol 0 clients"""
        publish_bundle(make_bundle(rollback=True))

        response = test_client.get(
            "/api/manifest",
            headers=poll_headers(protocol="0", **{"expo-embedded-update-id": EMBEDDED_ID}),
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Rollbacks not supported on protocol version 0"}

    def test_rollback_without_embedded_id(self, test_client, make_bundle, publish_bundle):
        publish_bundle(make_bundle(rollback=True))

        response = test_client.get("/api/manifest", headers=poll_headers())

        assert response.status_code == 400
        assert response.json() == {
            "error": "Invalid Expo-Embedded-Update-ID request header specified."
        }


class TestRequestValidation:

    @pytest.mark.parametrize("platform", ["", "windows"])
    def test_invalid_platform(self, test_client, platform):
        response = test_client.get("/api/manifest", headers=poll_headers(platform=platform))

        assert response.status_code == 400
        assert response.json() == {"error": "Unsupported platform. Expected either ios or android."}

    def test_missing_runtime_version(self, test_client):
        response = test_client.get("/api/manifest", headers={"expo-platform": "ios"})

        assert response.status_code == 400
        assert response.json() == {"error": "No runtimeVersion provided."}

    @pytest.mark.parametrize("protocol", ["2", "latest"])
    def test_unsupported_protocol_version(self, test_client, protocol):
        response = test_client.get("/api/manifest", headers=poll_headers(protocol=protocol))

        assert response.status_code == 400
        assert response.json() == {"error": "Unsupported protocol version. Expected either 0 or 1."}

    def test_repeated_protocol_header(self, test_client):
        """Test a protocol version header sent twice is rejected"""
        headers = [
            ("expo-platform", "ios"),
            ("expo-runtime-version", "1.0.0"),
            ("expo-protocol-version", "0"),
            ("expo-protocol-version", "1"),
        ]

        response = test_client.get("/api/manifest", headers=headers)

        assert response.status_code == 400


class TestCodeSigning:

    def test_signed_manifest(self, signing_client, test_signer, make_bundle, publish_bundle, parse_response):
        """Test the manifest part carries a verifiable expo-signature"""
        publish_bundle(make_bundle())

        response = signing_client.get(
            "/api/manifest",
            headers=poll_headers(**{"expo-expect-signature": 'sig, keyid="main", alg="rsa-v1_5-sha256"'}),
        )

        assert response.status_code == 200
        headers, manifest = parse_response(response)["manifest"]
        sig = headers["expo-signature"].split('sig="', 1)[1].split('"', 1)[0]
        assert test_signer.verify(dump_json(manifest), sig)
        assert headers["expo-signature"].endswith('keyid="main"')

    def test_signature_without_key(self, test_client, make_bundle, publish_bundle):
        """Test requesting a signature from a server without a key is rejected"""
        publish_bundle(make_bundle())

        response = test_client.get(
            "/api/manifest",
            headers=poll_headers(**{"expo-expect-signature": "sig"}),
        )

        assert response.status_code == 400
        assert response.json() == {
            "error": "Code signing requested but no key supplied when starting server."
        }


class TestDownloadTracking:

    def test_manifest_recorded_per_platform(self, test_client, make_bundle, publish_bundle, release_service):
        """Test each manifest sent adds one tracking row for the platform"""
        upload = publish_bundle(make_bundle())

        test_client.get("/api/manifest", headers=poll_headers(platform="ios"))
        test_client.get("/api/manifest", headers=poll_headers(platform="ios"))
        test_client.get("/api/manifest", headers=poll_headers(platform="android"))

        assert release_service.get_tracking_metrics(upload.releases[0]) == {"ios": 2, "android": 1}

    def test_only_served_release_recorded(self, test_client, make_bundle, publish_bundle, release_service):
        """Test downloads are attributed to the release that was served"""
        old = publish_bundle(make_bundle(bundle_label="old"))
        new = publish_bundle(make_bundle(bundle_label="new"))

        test_client.get("/api/manifest", headers=poll_headers())

        assert release_service.get_tracking_metrics(old.releases[0]) == {"ios": 0, "android": 0}
        assert release_service.get_tracking_metrics(new.releases[0]) == {"ios": 1, "android": 0}
