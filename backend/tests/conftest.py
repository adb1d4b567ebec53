"""
Pytest configuration and fixtures for backend tests.

Provides shared fixtures for:
- Test database sessions
- Local blob storage in a temporary directory
- Update bundle (zip) factories
- Code signing keys
- FastAPI test clients with dependency overrides
"""

import io
import json
import os
import tempfile
import zipfile

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app modules
os.environ['OTA_DB_URL'] = 'sqlite:///:memory:'
os.environ['OTA_ENV'] = 'test'
os.environ['OTA_STORAGE_TYPE'] = 'local'
os.environ['OTA_STORAGE_DIR'] = tempfile.mkdtemp(prefix='ota-test-storage-')
os.environ.pop('PRIVATE_KEY_PATH', None)

from backend.src.models import Base
from backend.src.services.release_service import ReleaseService
from backend.src.services.storage.local_adapter import LocalStorageAdapter
from backend.src.services.upload_service import UploadService
from backend.src.utils.signing import ManifestSigner


# Fixed zip entry time so metadata.json timestamps (createdAt) are predictable
BUNDLE_DATE_TIME = (2025, 1, 15, 12, 30, 44)
ROLLBACK_DATE_TIME = (2025, 2, 1, 8, 0, 0)

IOS_BUNDLE_PATH = '_expo/static/js/ios/index-1a2b3c.hbc'
ANDROID_BUNDLE_PATH = '_expo/static/js/android/index-4d5e6f.hbc'
PNG_ASSET_PATH = 'assets/5b2a3f9e8c1d'
FONT_ASSET_PATH = 'assets/7c0d4e1f2a3b'

PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00' * 64
FONT_BYTES = b'\x00\x01\x00\x00' + b'font-data' * 16


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture(scope='function')
def test_db_engine():
    """Create an in-memory SQLite database engine for testing."""
    from sqlalchemy import event

    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )

    # Enable foreign key constraints for SQLite
    def _fk_pragma_on_connect(dbapi_con, con_record):
        dbapi_con.execute('pragma foreign_keys=ON')

    event.listen(engine, 'connect', _fk_pragma_on_connect)

    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope='function')
def test_db_session(test_db_engine):
    """Create a test database session."""
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_db_engine
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def release_service(test_db_session):
    """ReleaseService bound to the test session."""
    return ReleaseService(test_db_session)


# ============================================================================
# Storage and Signing Fixtures
# ============================================================================

@pytest.fixture
def test_storage(tmp_path):
    """Local storage adapter rooted in a per-test temporary directory."""
    return LocalStorageAdapter(str(tmp_path / 'storage'))


@pytest.fixture(scope='session')
def rsa_private_key():
    """RSA key shared by the session (key generation is slow)."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def test_signer(rsa_private_key):
    """Manifest signer using the session RSA key."""
    return ManifestSigner(rsa_private_key, key_id='main')


# ============================================================================
# Bundle Factories
# ============================================================================

def _add_entry(archive: zipfile.ZipFile, name: str, data: bytes, date_time=BUNDLE_DATE_TIME):
    info = zipfile.ZipInfo(name, date_time=date_time)
    info.compress_type = zipfile.ZIP_DEFLATED
    archive.writestr(info, data)


def default_file_metadata(ios_assets=None, android_assets=None):
    """metadata.json fileMetadata for the default bundle layout."""
    default_assets = [
        {'path': PNG_ASSET_PATH, 'ext': 'png'},
        {'path': FONT_ASSET_PATH, 'ext': 'ttf'},
    ]
    return {
        'ios': {
            'bundle': IOS_BUNDLE_PATH,
            'assets': default_assets if ios_assets is None else ios_assets,
        },
        'android': {
            'bundle': ANDROID_BUNDLE_PATH,
            'assets': default_assets if android_assets is None else android_assets,
        },
    }


@pytest.fixture
def file_metadata():
    """Builder for fileMetadata with per-platform asset overrides."""
    return default_file_metadata


@pytest.fixture
def make_bundle():
    """
    Factory building update bundle zip bytes.

    Keyword Args:
        file_metadata: fileMetadata object for metadata.json
        files: Mapping of entry name to bytes (defaults to the default layout)
        metadata_bytes: Raw metadata.json content (overrides file_metadata)
        include_metadata: False to omit metadata.json
        rollback: True to add a rollback marker entry
        app_config: Object written to expoConfig.json
        bundle_label: Text mixed into launch bundles to vary the update id
        date_time: Zip entry time for every entry except the rollback marker
    """
    def _create(
        file_metadata=None,
        files=None,
        metadata_bytes=None,
        include_metadata=True,
        rollback=False,
        app_config=None,
        bundle_label='v1',
        date_time=BUNDLE_DATE_TIME,
    ):
        if files is None:
            files = {
                IOS_BUNDLE_PATH: f'// ios launch bundle {bundle_label}'.encode(),
                ANDROID_BUNDLE_PATH: f'// android launch bundle {bundle_label}'.encode(),
                PNG_ASSET_PATH: PNG_BYTES,
                FONT_ASSET_PATH: FONT_BYTES,
            }
        if metadata_bytes is None:
            metadata_bytes = json.dumps({
                'version': 0,
                'bundler': 'metro',
                'fileMetadata': file_metadata or default_file_metadata(),
                'label': bundle_label,
            }).encode('utf-8')

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, 'w') as archive:
            if include_metadata:
                _add_entry(archive, 'metadata.json', metadata_bytes, date_time)
            if app_config is not None:
                _add_entry(archive, 'expoConfig.json', json.dumps(app_config).encode('utf-8'), date_time)
            if rollback:
                _add_entry(archive, 'rollback', b'', date_time=ROLLBACK_DATE_TIME)
            for name, data in files.items():
                _add_entry(archive, name, data, date_time)
        return buffer.getvalue()
    return _create


@pytest.fixture
def publish_bundle(release_service, test_storage):
    """
    Store a bundle and create its release rows through UploadService.

    Returns the UploadResult.
    """
    def _publish(content, runtime_versions=('1.0.0',), commit_hash='abc123', **kwargs):
        service = UploadService(release_service, test_storage)
        return service.upload(content, list(runtime_versions), commit_hash, **kwargs)
    return _publish


# ============================================================================
# Response Helpers
# ============================================================================

@pytest.fixture
def bundle_layout():
    """Entry paths and asset bytes of the default bundle."""
    return {
        'ios_bundle': IOS_BUNDLE_PATH,
        'android_bundle': ANDROID_BUNDLE_PATH,
        'png': PNG_ASSET_PATH,
        'font': FONT_ASSET_PATH,
        'png_bytes': PNG_BYTES,
        'font_bytes': FONT_BYTES,
    }


def split_multipart(body, boundary):
    """
    Split a multipart/mixed body into {name: (headers, body)}.

    Header names are lowercased; the part name comes from Content-Disposition.
    """
    delimiter = f'--{boundary}'.encode('ascii')
    parsed = {}
    for segment in body.split(delimiter)[1:]:
        if segment.startswith(b'--'):
            break
        raw_headers, _, content = segment[2:].partition(b'\r\n\r\n')
        if content.endswith(b'\r\n'):
            content = content[:-2]
        headers = {}
        for line in raw_headers.split(b'\r\n'):
            name, _, value = line.decode('latin-1').partition(':')
            headers[name.strip().lower()] = value.strip()
        disposition = headers.get('content-disposition', '')
        name = disposition.split('name="', 1)[-1].split('"', 1)[0]
        parsed[name] = (headers, content)
    return parsed


@pytest.fixture(name='split_multipart')
def split_multipart_fixture():
    """Multipart splitter for response inspection."""
    return split_multipart


@pytest.fixture
def parse_response():
    """
    Split a multipart manifest/directive response into decoded parts.

    Returns a function mapping a response to {name: (headers, json_or_bytes)}.
    """
    def _parse(response):
        content_type = response.headers['content-type']
        assert content_type.startswith('multipart/mixed; boundary=')
        boundary = content_type.split('boundary=', 1)[1]
        parts = {}
        for name, (headers, body) in split_multipart(response.content, boundary).items():
            parts[name] = (headers, json.loads(body))
        return parts
    return _parse


# ============================================================================
# API Client Fixtures
# ============================================================================

def _build_client(test_db_session, storage, signer):
    from fastapi.testclient import TestClient
    from backend.src.main import app
    from backend.src.api.dependencies import get_signer, get_storage
    from backend.src.db.database import get_db

    def get_test_db():
        try:
            yield test_db_session
        finally:
            pass

    app.dependency_overrides[get_db] = get_test_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_signer] = lambda: signer
    return app, TestClient(app)


@pytest.fixture
def test_client(test_db_session, test_storage):
    """Test client without a code signing key."""
    app, client = _build_client(test_db_session, test_storage, None)
    with client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def signing_client(test_db_session, test_storage, test_signer):
    """Test client with a code signing key configured."""
    app, client = _build_client(test_db_session, test_storage, test_signer)
    with client:
        yield client

    app.dependency_overrides.clear()
