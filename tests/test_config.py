import json
from pathlib import Path

import pytest

from schedsim.config import SimulationConfig, load_config, parse_quanta, parse_queue_spec
from schedsim.errors import ConfigurationError
from schedsim.models import QueueAlgorithm, QueueConfig


def test_defaults_are_valid():
    config = SimulationConfig().validate()
    assert config.quantum == 4
    assert config.aging_interval == 5
    assert config.mlfq_levels == 3
    assert config.mlfq_aging_threshold == 10


@pytest.mark.parametrize(
    "kwargs",
    [
        {"quantum": 0},
        {"context_switch_overhead": -1},
        {"aging_interval": 0},
        {"mlfq_levels": 0},
        {"mlfq_quanta": [2, 4]},
        {"mlfq_quanta": [2, 0, 4]},
        {"mlq_queues": [QueueConfig(0, QueueAlgorithm.ROUND_ROBIN, 0)]},
    ],
)
def test_validate_rejects_bad_values(kwargs):
    with pytest.raises(ConfigurationError):
        SimulationConfig(**kwargs).validate()


def test_aging_interval_ignored_when_aging_disabled():
    SimulationConfig(aging=False, aging_interval=0, mlfq_aging_threshold=0).validate()


def test_parse_quanta():
    assert parse_quanta("2,4,8") == [2, 4, 8]
    assert parse_quanta(" 3 , 6 ") == [3, 6]
    with pytest.raises(ConfigurationError):
        parse_quanta("2,x")


def test_parse_queue_spec():
    queues = parse_queue_spec("rr:2, RR:4,fcfs")
    assert queues == [
        QueueConfig(0, QueueAlgorithm.ROUND_ROBIN, 2),
        QueueConfig(1, QueueAlgorithm.ROUND_ROBIN, 4),
        QueueConfig(2, QueueAlgorithm.FCFS, 0),
    ]


@pytest.mark.parametrize("spec", ["", "rr", "rr:x", "sjf:2"])
def test_parse_queue_spec_errors(spec):
    with pytest.raises(ConfigurationError):
        parse_queue_spec(spec)


def test_from_mapping_accepts_strings_and_objects():
    config = SimulationConfig.from_mapping(
        {
            "quantum": 3,
            "mlfq_quanta": "1,2,3",
            "mlq_queues": [{"level": 0, "algorithm": "rr", "quantum": 2}, {"level": 1}],
        }
    )
    assert config.quantum == 3
    assert config.mlfq_quanta == [1, 2, 3]
    assert config.mlq_queues == [
        QueueConfig(0, QueueAlgorithm.ROUND_ROBIN, 2),
        QueueConfig(1, QueueAlgorithm.FCFS, 4),
    ]


def test_from_mapping_rejects_unknown_keys():
    with pytest.raises(ConfigurationError):
        SimulationConfig.from_mapping({"quantm": 3})


def test_load_config(tmp_path: Path):
    p = tmp_path / "sim.json"
    p.write_text(json.dumps({"quantum": 2, "context_switch_overhead": 1, "aging": False}))
    config = load_config(p)
    assert config.quantum == 2
    assert config.context_switch_overhead == 1
    assert not config.aging


def test_load_config_requires_object(tmp_path: Path):
    p = tmp_path / "sim.json"
    p.write_text("[1, 2]")
    with pytest.raises(ConfigurationError):
        load_config(p)
