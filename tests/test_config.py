from __future__ import annotations

from pathlib import Path

import pytest

from oci_discover.config import DEFAULT_TIMEOUT, DEFAULT_WORKERS, RunConfig, dump_config, load_run_config
from oci_discover.util.errors import ConfigError

COMP = "ocid1.compartment.oc1..aaa"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for name in ("COMPARTMENT_ID", "REGION", "OUTDIR", "WORKERS", "TIMEOUT", "USER", "PORT", "AUTH", "PROFILE"):
        monkeypatch.delenv(f"OCI_DISCOVER_{name}", raising=False)
    monkeypatch.delenv("OCI_REGION", raising=False)


def test_defaults_with_positional_arguments() -> None:
    cfg = load_run_config([COMP, "ap-singapore-2"])
    assert isinstance(cfg, RunConfig)
    assert cfg.compartment_id == COMP
    assert cfg.region == "ap-singapore-2"
    assert cfg.filters == [".*"]
    assert cfg.outdir == Path.cwd()
    assert cfg.workers == DEFAULT_WORKERS == 1
    assert cfg.timeout == DEFAULT_TIMEOUT
    assert (cfg.user, cfg.port) == ("opc", 22)
    assert cfg.auth == "auto"


def test_filters_kept_in_given_order() -> None:
    cfg = load_run_config([COMP, "ap-singapore-2", "web.*", ".*db.*", "^prod-.*"])
    assert cfg.filters == ["web.*", ".*db.*", "^prod-.*"]


def test_options_may_follow_filters() -> None:
    cfg = load_run_config([COMP, "us-ashburn-1", "web.*", "--workers", "4", "db.*", "--no-progress"])
    assert cfg.filters == ["web.*", "db.*"]
    assert cfg.workers == 4
    assert cfg.progress is False


def test_missing_region_is_config_error() -> None:
    with pytest.raises(ConfigError):
        load_run_config([COMP])


def test_env_supplies_target(monkeypatch) -> None:
    monkeypatch.setenv("OCI_DISCOVER_COMPARTMENT_ID", COMP)
    monkeypatch.setenv("OCI_DISCOVER_REGION", "eu-frankfurt-1")
    cfg = load_run_config([])
    assert (cfg.compartment_id, cfg.region) == (COMP, "eu-frankfurt-1")


def test_config_file_used_when_env_and_cli_missing(tmp_path) -> None:
    cfg_path = tmp_path / "discover.yaml"
    cfg_path.write_text(
        "compartment_id: ocid1.compartment.oc1..file\n"
        "region: ap-singapore-1\n"
        "filters: ['acc', 'prd']\n"
        "workers: 3\n"
        "user: ubuntu\n",
        encoding="utf-8",
    )
    cfg = load_run_config(["--config", str(cfg_path)])
    assert cfg.compartment_id == "ocid1.compartment.oc1..file"
    assert cfg.filters == ["acc", "prd"]
    assert cfg.workers == 3
    assert cfg.user == "ubuntu"


def test_precedence_file_env_cli(tmp_path, monkeypatch) -> None:
    cfg_path = tmp_path / "discover.yaml"
    cfg_path.write_text("workers: 2\nport: 2200\nfilters: [acc]\n", encoding="utf-8")
    monkeypatch.setenv("OCI_DISCOVER_WORKERS", "5")
    monkeypatch.setenv("OCI_DISCOVER_PORT", "2201")

    cfg = load_run_config([COMP, "ap-singapore-2", "glb", "--config", str(cfg_path), "--port", "2202"])

    assert cfg.workers == 5
    assert cfg.port == 2202
    assert cfg.filters == ["glb"]


def test_zero_timeout_disables_timeout() -> None:
    cfg = load_run_config([COMP, "ap-singapore-2", "--timeout", "0"])
    assert cfg.timeout is None


def test_invalid_config_values(tmp_path) -> None:
    bad = tmp_path / "bad.yaml"
    bad.write_text("workers: many\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_run_config([COMP, "r", "--config", str(bad)])

    with pytest.raises(ConfigError):
        load_run_config([COMP, "r", "--workers", "0"])


def test_unknown_config_keys_warn(tmp_path) -> None:
    cfg_path = tmp_path / "discover.json"
    cfg_path.write_text(
        '{"compartment_id": "' + COMP + '", "region": "ap-singapore-2", "colour": "blue"}', encoding="utf-8"
    )
    with pytest.warns(UserWarning, match="colour"):
        cfg = load_run_config(["--config", str(cfg_path)])
    assert cfg.region == "ap-singapore-2"


def test_dump_config_round_trips_fields() -> None:
    cfg = load_run_config([COMP, "ap-singapore-2", "web.*"])
    dumped = dump_config(cfg)
    assert dumped["filters"] == ["web.*"]
    assert dumped["compartment_id"] == COMP
    assert set(dumped) >= {"workers", "timeout", "user", "port", "auth", "outdir"}


def test_lone_positional_is_rejected_instead_of_becoming_compartment(tmp_path) -> None:
    cfg_path = tmp_path / "discover.yaml"
    cfg_path.write_text(f"compartment_id: {COMP}\nregion: ap-singapore-2\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="compartment_id> <region>"):
        load_run_config(["--config", str(cfg_path), "web.*"])

    cfg = load_run_config([COMP, "ap-singapore-2", "web.*", "--config", str(cfg_path)])
    assert cfg.compartment_id == COMP
    assert cfg.filters == ["web.*"]
