"""
Tests for settings loading and the object storage client
"""
from unittest.mock import MagicMock

import pytest
import yaml


@pytest.fixture
def settings_file(tmp_path, monkeypatch):
    import settings

    path = tmp_path / 'config' / 'settings.yaml'
    monkeypatch.setattr(settings, 'CONFIG_FILE', str(path))
    monkeypatch.setattr(settings, '_cached_settings', None)
    for name in settings.ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)
    return path


class TestSettings:
    """YAML settings merged over defaults"""

    def test_merge_keeps_missing_defaults(self):
        from settings import merge_settings

        merged = merge_settings({'cache': {'ttl': 30}, 'limits': {'backend': 'redis'}})
        assert merged['cache']['ttl'] == 30
        assert merged['limits']['backend'] == 'redis'
        assert merged['limits']['versions_per_window'] == 5
        assert merged['storage']['bucket'] == 'smr'

    def test_merge_does_not_mutate_defaults(self):
        from constants import DEFAULT_SETTINGS
        from settings import merge_settings

        merge_settings({'cache': {'ttl': 99}})
        assert DEFAULT_SETTINGS['cache']['ttl'] == 5

    def test_missing_file_is_written_with_defaults(self, settings_file):
        from settings import load_settings

        loaded = load_settings()
        assert loaded['cache']['ttl'] == 5
        assert yaml.safe_load(settings_file.read_text())['limits']['download_window_hours'] == 4

    def test_existing_file_is_merged(self, settings_file):
        from settings import load_settings

        settings_file.parent.mkdir(parents=True)
        settings_file.write_text(yaml.dump({'limits': {'versions_per_window': 3}}))

        loaded = load_settings()
        assert loaded['limits']['versions_per_window'] == 3
        assert loaded['limits']['version_window_hours'] == 24

    def test_settings_are_cached_until_reload(self, settings_file):
        from settings import load_settings, reload_conf

        settings_file.parent.mkdir(parents=True)
        settings_file.write_text(yaml.dump({'cache': {'ttl': 1}}))
        assert load_settings()['cache']['ttl'] == 1

        settings_file.write_text(yaml.dump({'cache': {'ttl': 2}}))
        assert load_settings()['cache']['ttl'] == 1
        assert reload_conf()['cache']['ttl'] == 2

    def test_environment_overrides(self, settings_file, monkeypatch):
        from settings import load_settings

        monkeypatch.setenv('DATABASE_URL', 'postgresql://smr@db/smr')
        monkeypatch.setenv('MODREPO_API_TOKEN', 'secret')

        loaded = load_settings()
        assert loaded['database']['url'] == 'postgresql://smr@db/smr'
        assert loaded['api']['token'] == 'secret'

    @pytest.mark.parametrize('overrides,path', [
        ({'limits': {'backend': 'memcached'}}, 'limits/backend'),
        ({'limits': {'versions_per_window': 0}}, 'limits/versions_per_window'),
        ({'limits': {'download_window_hours': 'four'}}, 'limits/download_window_hours'),
        ({'cache': {'ttl': -1}}, 'cache/ttl'),
    ])
    def test_verify_rejects_bad_values(self, overrides, path):
        from settings import merge_settings, verify_settings

        valid, errors = verify_settings(merge_settings(overrides))
        assert valid is False
        assert [e['path'] for e in errors] == [path]

    def test_verify_accepts_defaults(self):
        from settings import merge_settings, verify_settings

        assert verify_settings(merge_settings({})) == (True, [])

    def test_create_app_rejects_invalid_settings(self):
        from app import create_app

        with pytest.raises(ValueError):
            create_app(settings={'database': {'url': 'sqlite://'}, 'cache': {'ttl': -5}})


class TestStorageClient:
    """Presigned download links"""

    def test_generate_download_link(self):
        from storage import StorageClient

        s3_client = MagicMock()
        s3_client.generate_presigned_url.return_value = 'https://s3.example.com/smr/mod/a.smod?X-Amz-Signature=x'
        storage = StorageClient('smr', link_expiry=600, client=s3_client)

        assert storage.generate_download_link('/mod/a.smod') == 'https://s3.example.com/smr/mod/a.smod?X-Amz-Signature=x'
        s3_client.generate_presigned_url.assert_called_once_with(
            'get_object',
            Params={'Bucket': 'smr', 'Key': '/mod/a.smod'},
            ExpiresIn=600,
        )

    def test_from_settings_builds_s3_client(self, monkeypatch):
        import storage

        boto_client = MagicMock()
        monkeypatch.setattr(storage.boto3, 'client', boto_client)

        client = storage.StorageClient.from_settings({
            'bucket': 'artifacts',
            'endpoint_url': 'http://minio:9000',
            'region': 'eu-west-1',
            'link_expiry': 120,
        })

        assert client.bucket == 'artifacts'
        assert client.link_expiry == 120
        args, kwargs = boto_client.call_args
        assert args == ('s3',)
        assert kwargs['endpoint_url'] == 'http://minio:9000'
        assert kwargs['region_name'] == 'eu-west-1'
