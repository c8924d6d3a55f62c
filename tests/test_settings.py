from __future__ import annotations

import pytest

from sovits_installer.errors import ConfigError
from sovits_installer.lib.fetch import RetryPolicy
from sovits_installer.settings import InstallerSettings, load_settings


def test_no_path_gives_defaults():
    s = load_settings(None)
    assert s.retry_policy == RetryPolicy()
    assert s.max_workers is None
    assert s.mirror_url("HF") is None


def test_yaml_settings(tmp_path):
    p = tmp_path / "install.yaml"
    p.write_text(
        "fetch:\n"
        "  max_tries: 3\n"
        "  retry_wait: 1\n"
        "  max_workers: 2\n"
        "  resources:\n"
        "    uvr5_weights:\n"
        "      read_timeout: 900\n"
        "mirrors:\n"
        "  ModelScope: https://ms.local/repo\n"
    )

    s = load_settings(str(p))

    assert s.retry_policy == RetryPolicy(max_tries=3, retry_wait=1.0)
    assert s.resource_policy("uvr5_weights") == RetryPolicy(max_tries=3, retry_wait=1.0, read_timeout=900.0)
    assert s.resource_policy("g2pw") is None
    assert s.max_workers == 2
    assert s.mirror_url("ModelScope") == "https://ms.local/repo"


def test_invalid_retry_settings(tmp_path):
    p = tmp_path / "install.yaml"
    p.write_text("fetch:\n  max_tries: 0\n")
    with pytest.raises(ConfigError):
        load_settings(str(p))


@pytest.mark.parametrize("name,body", [("missing.yaml", None), ("install.json", "{}"), ("list.yaml", "- 1\n")])
def test_rejected_files(tmp_path, name, body):
    p = tmp_path / name
    if body is not None:
        p.write_text(body)
    with pytest.raises(ConfigError):
        load_settings(str(p))


def test_settings_object_is_plain_mapping():
    assert InstallerSettings(raw={"fetch": {"max_workers": 0}}).max_workers is None
