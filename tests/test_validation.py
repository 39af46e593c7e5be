"""
Tests for boundary validation, the analysis cache and configuration.

These tests verify:
1. One name normalization rule is used everywhere
2. Non-finite and malformed input is rejected with a boundary rule
3. Hypothesis payloads parse from camelCase and snake_case
4. The LRU cache evicts oldest entries and counts hits
5. Config files override defaults; a missing file means defaults
"""

import json

import pytest

from causalguard.cache import AnalysisCache, InMemoryAnalysisCache
from causalguard.config import (
    DEFAULT_MAX_WARNINGS,
    EngineConfig,
    GatePolicyConfig,
    gate_policy_from_dict,
    load_config,
)
from causalguard.domain import BoundaryError, BoundaryRule, GatePolicy
from causalguard.evidence import EvidenceValidationError, PriorArt, validation_from_dict
from causalguard.gates.domains import Domain
from causalguard.gates.patterns import POLICY_ENTROPY, POLICY_SYCOPHANCY
from causalguard.validation import (
    create_cache_key,
    hypothesis_from_dict,
    normalize_name,
    require_finite,
    require_finite_mapping,
    sanitize_names,
)


# =============================================================================
# NAME NORMALIZATION TESTS
# =============================================================================

class TestNormalization:

    @pytest.mark.parametrize("name", ["Hours Studied", "hours_studied", "HoursStudied", " HOURS-studied "])
    def test_spellings_collapse(self, name):
        assert normalize_name(name) == "hoursstudied"

    def test_sanitize_dedupes_keeping_first_spelling(self):
        assert sanitize_names([" Age ", "age", "", "Income", "INCOME"]) == ["Age", "Income"]

    def test_sanitize_none(self):
        assert sanitize_names(None) == []


# =============================================================================
# NUMERIC BOUNDARY TESTS
# =============================================================================

class TestNumericBoundary:

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_rejected(self, value):
        with pytest.raises(BoundaryError) as exc:
            require_finite(value, "x")
        assert exc.value.rule == BoundaryRule.B1_NON_FINITE_INPUT
        assert exc.value.field_name == "x"

    @pytest.mark.parametrize("value", [True, "abc", None, [1]])
    def test_non_numeric_rejected(self, value):
        with pytest.raises(BoundaryError) as exc:
            require_finite(value, "x")
        assert exc.value.rule == BoundaryRule.B2_MALFORMED_PAYLOAD

    def test_numeric_strings_accepted(self):
        assert require_finite("0.5", "x") == 0.5

    def test_mapping_checked_per_value(self):
        with pytest.raises(BoundaryError) as exc:
            require_finite_mapping({"A": 1.0, "B": float("nan")}, "observed")
        assert exc.value.field_name == "observed[B]"

    def test_mapping_must_be_mapping(self):
        with pytest.raises(BoundaryError):
            require_finite_mapping([1, 2], "observed")

    def test_error_message_carries_rule(self):
        error = BoundaryError(BoundaryRule.B3_MISSING_FIELD, "id is required", "id")
        assert str(error) == "[missing_field] id is required"


# =============================================================================
# PAYLOAD PARSING TESTS
# =============================================================================

class TestHypothesisPayload:

    def test_camel_case_payload(self):
        h = hypothesis_from_dict({
            "id": "h-1",
            "thesis": "T",
            "confounderSet": ["Age", "age"],
            "interventionValueScore": 0.7,
            "validationResult": {"success": True, "metrics": {"pValue": 0.01, "conclusionValid": True}},
            "doPlan": "do(T=1)",
        })
        assert h.confounder_set == ("Age",)
        assert h.intervention_value_score == 0.7
        assert h.validation_result.p_value == 0.01
        assert h.do_plan == "do(T=1)"

    def test_snake_case_payload(self):
        h = hypothesis_from_dict({"id": "h-2", "thesis": "T", "novelty_score": 80})
        assert h.novelty_score == 80.0

    def test_missing_id(self):
        with pytest.raises(BoundaryError) as exc:
            hypothesis_from_dict({"thesis": "T"})
        assert exc.value.rule == BoundaryRule.B3_MISSING_FIELD

    def test_non_finite_score(self):
        with pytest.raises(BoundaryError) as exc:
            hypothesis_from_dict({"id": "h", "noveltyScore": float("nan")})
        assert exc.value.rule == BoundaryRule.B1_NON_FINITE_INPUT

    def test_malformed_validation(self):
        with pytest.raises(BoundaryError) as exc:
            hypothesis_from_dict({"id": "h", "validationResult": {"success": True, "metrics": {"pValue": "n/a"}}})
        assert exc.value.rule == BoundaryRule.B2_MALFORMED_PAYLOAD

    def test_not_an_object(self):
        with pytest.raises(BoundaryError):
            hypothesis_from_dict(["h"])

    def test_validation_none_passes_through(self):
        assert validation_from_dict(None) is None

    def test_prior_art_rejects_nan(self):
        with pytest.raises(EvidenceValidationError):
            PriorArt("s", "t", float("nan"))


# =============================================================================
# CACHE TESTS
# =============================================================================

class TestCache:

    def test_cache_key_is_deterministic(self):
        assert create_cache_key("ns", {"b": 1, "a": 2}) == create_cache_key("ns", {"a": 2, "b": 1})
        assert create_cache_key("ns", "x") != create_cache_key("other", "x")
        assert create_cache_key("ns", "x").startswith("ns:")

    def test_in_memory_cache_satisfies_protocol(self):
        assert isinstance(InMemoryAnalysisCache(), AnalysisCache)

    def test_lru_eviction(self):
        cache = InMemoryAnalysisCache(max_entries=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)
        assert "a" in cache
        assert "b" not in cache
        assert len(cache) == 2

    def test_hits_and_misses(self):
        cache = InMemoryAnalysisCache()
        assert cache.get("missing") is None
        cache.set("k", "v")
        assert cache.get("k") == "v"
        assert (cache.hits, cache.misses) == (1, 1)

    def test_evict_and_clear(self):
        cache = InMemoryAnalysisCache()
        cache.set("k", 1)
        cache.evict("k")
        cache.evict("never-set")
        assert "k" not in cache
        cache.set("j", 2)
        cache.clear()
        assert len(cache) == 0

    def test_max_entries_must_be_positive(self):
        with pytest.raises(ValueError):
            InMemoryAnalysisCache(max_entries=0)


# =============================================================================
# CONFIG TESTS
# =============================================================================

class TestConfig:

    def test_defaults(self):
        config = load_config()
        assert config == EngineConfig()
        assert config.gate.max_warnings == DEFAULT_MAX_WARNINGS
        assert config.gate.domain is None

    def test_missing_file_means_defaults(self, tmp_path):
        assert load_config(tmp_path / "absent.json") == EngineConfig()

    def test_file_overrides(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "gate": {"sycophancy_policy": "warning", "max_warnings": 5, "domain": "ecology"},
            "novelty": {"novelty_threshold": 0.4},
            "cache": {"max_entries": 16},
        }), encoding="utf-8")
        config = load_config(path)
        assert config.gate.policy_for(POLICY_SYCOPHANCY) is GatePolicy.WARNING
        assert config.gate.policy_for(POLICY_ENTROPY) is GatePolicy.FATAL
        assert config.gate.max_warnings == 5
        assert config.gate.domain is Domain.ECOLOGY
        assert config.novelty.novelty_threshold == 0.4
        assert config.novelty.falsifiability_threshold == 0.55
        assert config.cache_max_entries == 16

    def test_unknown_policy_rejected(self):
        with pytest.raises(BoundaryError) as exc:
            gate_policy_from_dict({"entropy_policy": "sometimes"})
        assert exc.value.field_name == "entropy_policy"

    def test_non_object_file_rejected(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(BoundaryError):
            load_config(path)

    def test_to_dict_uses_enum_values(self):
        payload = GatePolicyConfig(domain=Domain.SELFISH_GENE).to_dict()
        assert payload["entropy_policy"] == "fatal"
        assert payload["domain"] == "selfish_gene"
