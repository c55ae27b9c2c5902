from __future__ import annotations

import json

import pytest

import pool_yield_run
from pool_yield_lab.core import PoolRecord, PoolRecordRepository


class _RecordingPipeline:
    instances: list["_RecordingPipeline"] = []

    def __init__(self, adapters, settings) -> None:
        self.adapters = adapters
        self.settings = settings
        _RecordingPipeline.instances.append(self)

    def run(self) -> PoolRecordRepository:
        return PoolRecordRepository(
            [PoolRecord("0xabc-ethereum", "Ethereum", "gaib", "SAID", 1_000.0, apy_base=8.0)]
        )


@pytest.fixture(autouse=True)
def _fake_pipeline(monkeypatch: pytest.MonkeyPatch) -> None:
    _RecordingPipeline.instances.clear()
    monkeypatch.delenv("POOL_YIELD_CONFIG", raising=False)
    monkeypatch.setattr(pool_yield_run, "Pipeline", _RecordingPipeline)


def test_main_runs_named_integrations_and_prints_json(capsys: pytest.CaptureFixture[str]) -> None:
    pool_yield_run.main(["gaib", "configs/default.toml"])

    [pipeline] = _RecordingPipeline.instances
    assert [a.project for a in pipeline.adapters] == ["gaib"]
    out = json.loads(capsys.readouterr().out)
    assert out[0]["poolId"] == "0xabc-ethereum"
    assert out[0]["apyBase"] == 8.0


def test_main_defaults_to_every_integration() -> None:
    pool_yield_run.main([])
    [pipeline] = _RecordingPipeline.instances
    assert len(pipeline.adapters) == 6


def test_main_rejects_only_unknown_names() -> None:
    with pytest.raises(SystemExit):
        pool_yield_run.main(["nope"])
