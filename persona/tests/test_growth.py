"""Tests for GrowthConfig and the cognitive growth calculator."""

import pytest

from persona.core.cognitive import KnowledgeItem
from persona.core.errors import ConfigurationError
from persona.core.growth import (
    DEFAULT_GROWTH_CONFIG,
    GrowthConfig,
    MaturityThresholds,
    calculate_growth,
    knowledge_score,
    memory_score,
)
from persona.core.memory import MemoryEntry


@pytest.fixture
def knowledge():
    return [
        KnowledgeItem(content="Python", confidence=0.9),
        KnowledgeItem(content="Elixir", confidence=0.8),
    ]


@pytest.fixture
def memories():
    return [MemoryEntry(content="first"), MemoryEntry(content="second")]


# ── Configuration ───────────────────────────────────────────────────────────


def test_default_config():
    """Defaults are thresholds 0.25/0.75/0.95, weights 0.4/0.3/0.3."""
    config = GrowthConfig()

    assert config.maturity_thresholds == MaturityThresholds(0.25, 0.75, 0.95)
    assert config.knowledge_weight == 0.4
    assert config.memory_weight == 0.3
    assert config.emotional_weight == 0.3
    assert config.growth_rate == 0.1
    assert config.decay_rate == 0.05
    assert not config.weighted_growth


def test_weights_must_sum_to_one():
    """Weights off by more than epsilon are rejected."""
    with pytest.raises(ConfigurationError, match="sum to 1.0"):
        GrowthConfig(knowledge_weight=0.5, memory_weight=0.3, emotional_weight=0.3)


def test_weights_within_epsilon_accepted():
    """Float noise below 1e-6 is fine."""
    config = GrowthConfig(knowledge_weight=0.1, memory_weight=0.2, emotional_weight=0.7)
    assert config.emotional_weight == 0.7


def test_negative_weight_rejected():
    with pytest.raises(ConfigurationError):
        GrowthConfig(knowledge_weight=1.2, memory_weight=-0.2, emotional_weight=0.0)


def test_thresholds_must_increase():
    """Non-increasing thresholds are a configuration error."""
    with pytest.raises(ConfigurationError, match="strictly increasing"):
        MaturityThresholds(growing=0.5, mature=0.5, transcendent=0.9)


def test_threshold_out_of_range():
    with pytest.raises(ConfigurationError):
        MaturityThresholds(growing=0.25, mature=0.75, transcendent=1.5)


@pytest.mark.parametrize("rate", [0.0, 1.5, -0.1])
def test_growth_rate_range(rate):
    """growth_rate must be in (0, 1]."""
    with pytest.raises(ConfigurationError):
        GrowthConfig(growth_rate=rate)


@pytest.mark.parametrize("rate", [1.0, -0.01])
def test_decay_rate_range(rate):
    """decay_rate must be in [0, 1)."""
    with pytest.raises(ConfigurationError):
        GrowthConfig(decay_rate=rate)


def test_configuration_error_is_value_error():
    """Callers catching ValueError see configuration errors too."""
    with pytest.raises(ValueError):
        GrowthConfig(decay_rate=2.0)


def test_config_dict_roundtrip():
    """A config survives to_dict / from_dict."""
    config = GrowthConfig(
        maturity_thresholds=MaturityThresholds(0.1, 0.5, 0.9),
        decay_rate=0.2,
        weighted_growth=True,
    )
    assert GrowthConfig.from_dict(config.to_dict()) == config


# ── Factor scores ───────────────────────────────────────────────────────────


def test_knowledge_score_mean_confidence(knowledge):
    assert knowledge_score(knowledge) == pytest.approx(0.85)


def test_knowledge_score_missing_confidence():
    """Items without confidence count as 0.75."""
    items = [KnowledgeItem(content="a"), KnowledgeItem(content="b", confidence=0.25)]
    assert knowledge_score(items) == pytest.approx(0.5)


def test_knowledge_score_empty():
    assert knowledge_score([]) == 0.0


def test_memory_score_saturates():
    """Memory score is count / 20, capped at 1."""
    assert memory_score([MemoryEntry(content="x")] * 5) == pytest.approx(0.25)
    assert memory_score([MemoryEntry(content="x")] * 25) == 1.0


# ── Growth calculation ──────────────────────────────────────────────────────


def test_growth_example(knowledge, memories):
    """Confidence 0.85, 2 memories, intensity 0.7 gives 0.55."""
    result = calculate_growth(knowledge, memories, 0.7)

    assert result.amount == pytest.approx(0.55)
    assert result.factors.knowledge == pytest.approx(0.2833, abs=1e-3)
    assert result.factors.memory == pytest.approx(0.0333, abs=1e-3)
    assert result.factors.emotional == pytest.approx(0.2333, abs=1e-3)


def test_factors_sum_to_amount(knowledge, memories):
    """The breakdown adds up to the amount."""
    result = calculate_growth(knowledge, memories, 0.4)
    f = result.factors

    assert f.knowledge + f.memory + f.emotional == pytest.approx(result.amount)


def test_growth_with_nothing():
    """No knowledge, memory or emotion means no growth."""
    result = calculate_growth([], [], 0.0)
    assert result.amount == 0.0


def test_default_ignores_configured_weights(knowledge, memories):
    """Unweighted growth is the same whatever the weights are."""
    skewed = GrowthConfig(knowledge_weight=1.0, memory_weight=0.0, emotional_weight=0.0)

    a = calculate_growth(knowledge, memories, 0.7, DEFAULT_GROWTH_CONFIG)
    b = calculate_growth(knowledge, memories, 0.7, skewed)

    assert a.amount == pytest.approx(b.amount)


def test_weighted_growth(knowledge, memories):
    """weighted_growth applies 0.4 / 0.3 / 0.3."""
    config = GrowthConfig(weighted_growth=True)
    result = calculate_growth(knowledge, memories, 0.7, config)

    assert result.amount == pytest.approx(0.85 * 0.4 + 0.1 * 0.3 + 0.7 * 0.3)
    assert result.factors.knowledge == pytest.approx(0.34)
