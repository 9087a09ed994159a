from dataclasses import replace

import pandas as pd
import pytest

from sixfig.config import (
    IngestConfig,
    config_from_env,
    load_currency_table,
    policies_from_frame,
)


def test_defaults():
    config = IngestConfig()
    assert config.min_confidence == 65
    assert config.threshold_for("usd") == 100_000
    assert config.threshold_for("SEK") == 900_000
    assert config.threshold_for("XYZ") is None
    assert config.policy_for(None) is None


def test_load_currency_table_from_csv(tmp_path):
    path = tmp_path / "thresholds.csv"
    path.write_text(
        "Currency,Min_Annual,max_plausible_annual,description_cap_annual\n"
        "usd,120000,,\n"
        "JPY,15000000,300000000,90000000\n"
    )
    policies = load_currency_table(path)

    assert policies["USD"].min_annual == 120_000
    # blank ceilings fall back to the defaults for that currency
    assert policies["USD"].max_plausible_annual == 1_500_000
    assert policies["JPY"].description_cap_annual == 90_000_000


def test_missing_required_column():
    with pytest.raises(ValueError, match="min_annual"):
        policies_from_frame(pd.DataFrame({"currency": ["USD"]}))


def test_with_currency_policies_merges():
    base = IngestConfig()
    override = policies_from_frame(pd.DataFrame({"currency": ["GBP"], "min_annual": ["90,000"]}))
    config = base.with_currency_policies(override)
    assert config.threshold_for("GBP") == 90_000
    assert config.threshold_for("USD") == 100_000
    assert base.threshold_for("GBP") == 75_000


def test_config_is_immutable():
    config = IngestConfig()
    tweaked = replace(config, min_confidence=80)
    assert config.min_confidence == 65
    assert tweaked.min_confidence == 80


def test_config_from_env(tmp_path, monkeypatch):
    path = tmp_path / "t.csv"
    path.write_text("currency,min_annual\nEUR,95000\n")
    monkeypatch.setenv("SIXFIG_THRESHOLDS_CSV", str(path))
    monkeypatch.setenv("SIXFIG_MIN_CONFIDENCE", "70")

    config = config_from_env()

    assert config.threshold_for("EUR") == 95_000
    assert config.min_confidence == 70


def test_config_from_env_defaults(monkeypatch):
    monkeypatch.delenv("SIXFIG_THRESHOLDS_CSV", raising=False)
    monkeypatch.delenv("SIXFIG_MIN_CONFIDENCE", raising=False)
    assert config_from_env() == IngestConfig()
