from __future__ import annotations

import pytest

from pool_yield_lab import INTEGRATIONS, get_adapter
from pool_yield_lab.core import SourceFormat


def test_every_integration_is_registered_under_its_project() -> None:
    assert set(INTEGRATIONS) == {
        "gaib",
        "kinetiq-khype",
        "usual-eth0",
        "usual-eur0",
        "aera-v2",
        "aave-v3",
    }
    for name in INTEGRATIONS:
        adapter = get_adapter(name)
        assert adapter.project == name
        assert adapter.sources <= set(SourceFormat)


def test_only_lending_merges_registry_rewards() -> None:
    merging = {name for name in INTEGRATIONS if get_adapter(name).merge_registry_rewards}
    assert merging == {"aave-v3"}


def test_unknown_integration() -> None:
    with pytest.raises(KeyError, match="known"):
        get_adapter("nope")
