"""Unit tests for helper functions, settings and labels."""

import pytest
import yaml
from synapse_operator.common.models.labels import Labels
from synapse_operator.store.kinds import lookup
from synapse_operator.types.settings import Settings
from synapse_operator.utils.helpers import (
    canonicalize_dict,
    compute_namespace,
    edit_yaml_document,
    get_path,
    is_subset,
    json_pointer,
    load_yaml,
    read_yaml_values,
)


class TestIsSubset:
    def test_extra_observed_keys_are_ignored(self):
        assert is_subset({"a": 1}, {"a": 1, "b": 2})

    def test_nested_mismatch(self):
        assert not is_subset({"a": {"b": 1}}, {"a": {"b": 2}})

    def test_missing_key(self):
        assert not is_subset({"a": 1}, {})

    def test_lists_must_have_same_length(self):
        assert is_subset([{"a": 1}], [{"a": 1, "x": 0}])
        assert not is_subset([{"a": 1}], [{"a": 1}, {"a": 2}])

    def test_scalar_against_missing(self):
        assert not is_subset("ClusterIP", None)


class TestJsonPointer:
    def test_escapes_reference_tokens(self):
        assert json_pointer("metadata", "labels", "app.kubernetes.io/name") == (
            "/metadata/labels/app.kubernetes.io~1name"
        )
        assert json_pointer("a~b") == "/a~0b"


class TestYaml:
    def test_load_yaml_requires_mapping(self):
        with pytest.raises(ValueError):
            load_yaml("- a\n- b\n")

    def test_load_yaml_empty(self):
        assert load_yaml("") == {}

    def test_edit_creates_missing_parents(self):
        document = edit_yaml_document("a: 1\n", {"b/c": 2})
        assert yaml.safe_load(document) == {"a": 1, "b": {"c": 2}}

    def test_dotted_keys_are_plain_keys(self):
        document = edit_yaml_document("permissions:\n  example.com: user\n", {"x": 1})
        assert yaml.safe_load(document)["permissions"] == {"example.com": "user"}

    def test_read_values(self):
        values = read_yaml_values("a:\n  b: 1\n", ["a/b", "a/c"])
        assert values == {"a/b": 1, "a/c": None}


class TestMisc:
    def test_compute_namespace(self):
        assert compute_namespace("default", None) == "default"
        assert compute_namespace("default", "other") == "other"

    def test_get_path(self):
        assert get_path({"a": {"b": 1}}, ("a", "b")) == 1
        assert get_path({"a": 1}, ("a", "b"), "x") == "x"

    def test_canonicalize_dict_sorts_keys(self):
        assert canonicalize_dict({"b": 1, "a": {"d": 1, "c": 2}}) == canonicalize_dict(
            {"a": {"c": 2, "d": 1}, "b": 1}
        )

    def test_lookup_unknown_kind(self):
        with pytest.raises(ValueError):
            lookup("Secret")

    def test_kind_info(self):
        assert lookup("Deployment").group == "apps"
        assert lookup("ConfigMap").group == ""
        synapse = lookup("Synapse")
        assert synapse.custom and synapse.group == "synapse.opdev.io"
        assert synapse.version == "v1alpha1"


class TestSettings:
    def test_overrides(self):
        settings = Settings(requeue_delay_seconds=1.0, worker_limit=8)
        assert settings.requeue_delay_seconds == 1.0
        assert settings.worker_limit == 8
        assert Settings().worker_limit == Settings.worker_limit

    def test_error_backoff_is_capped(self):
        settings = Settings(error_backoff_seconds=1.0, error_backoff_max_seconds=5.0)
        assert [settings.error_backoff(n) for n in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]


class TestLabels:
    def test_instance_label_is_truncated(self):
        assert len(Labels.get_or_valid_instance_label_value("x" * 80)) == 63
        assert Labels.get_or_valid_instance_label_value("name-") == "name"

    def test_selector_labels_are_stable_subset(self):
        labels = Labels.generate_default_labels("irc", "Heisenbridge", "irc-heisenbridge", "op")
        selector = labels.selector_labels().as_dict()
        assert set(selector) == {
            Labels.SYNAPSE_KIND_LABEL,
            Labels.SYNAPSE_OWNER_LABEL,
            Labels.SYNAPSE_COMPONENT_LABEL,
        }
