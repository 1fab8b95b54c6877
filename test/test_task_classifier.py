import pytest
from prometheus_client import REGISTRY

from classification.task_classifier import TaskClassifier, parse_classification
from llm.llm_client import LLMClient
from taskagent.errors import ClassificationMalformed, RemoteCallFailed
from taskagent.models import TaskKind


def _classifier(provider):
    return TaskClassifier(llm_client=LLMClient(provider=provider))


def test_classifies_email_with_parameters(fake_provider_factory):
    provider = fake_provider_factory(
        '{"type":"EMAIL","parameters":{"subject":"Launch","body":"<p>Hi</p>",'
        '"recipients":["a@test.com"]}}'
    )
    out = _classifier(provider).classify("Email our customers about the launch")

    assert out.kind == TaskKind.EMAIL
    assert out.parameters["recipients"] == ["a@test.com"]
    assert provider.calls[0]["user"] == "Email our customers about the launch"


def test_accepts_kind_key_and_lowercase(fake_provider_factory):
    provider = fake_provider_factory('{"kind":"presentation","parameters":{"topic":"AI"}}')
    out = _classifier(provider).classify("Make slides about AI")
    assert out.kind == TaskKind.PRESENTATION
    assert out.parameters == {"topic": "AI"}


def test_null_parameters_become_empty(fake_provider_factory):
    provider = fake_provider_factory('{"type":"GENERAL","parameters":null}')
    out = _classifier(provider).classify("Organize my week")
    assert out.kind == TaskKind.GENERAL
    assert out.parameters == {}


@pytest.mark.parametrize(
    "raw",
    [
        "THIS IS NOT JSON AT ALL",
        '{"parameters": {"topic": "x"}}',
        '{"type": "VIDEO", "parameters": {}}',
        '["EMAIL"]',
    ],
)
def test_malformed_output_falls_back_to_general(fake_provider_factory, raw):
    out = _classifier(fake_provider_factory(raw)).classify("anything")
    assert out.kind == TaskKind.GENERAL
    assert out.parameters == {}


def test_parse_classification_signals_malformed():
    with pytest.raises(ClassificationMalformed):
        parse_classification("nope")


def test_remote_failure_propagates():
    class BrokenProvider:
        def generate(self, **kwargs):
            raise TimeoutError("read timeout")

    with pytest.raises(RemoteCallFailed):
        _classifier(BrokenProvider()).classify("anything")


def _classified_count(kind):
    return REGISTRY.get_sample_value("taskagent_classifications_total", {"kind": kind}) or 0.0


def test_counts_classifications_by_kind(fake_provider_factory):
    before_email = _classified_count("EMAIL")
    before_general = _classified_count("GENERAL")

    _classifier(fake_provider_factory('{"type":"EMAIL","parameters":{}}')).classify("mail them")
    _classifier(fake_provider_factory("not json")).classify("whatever")

    assert _classified_count("EMAIL") == before_email + 1
    assert _classified_count("GENERAL") == before_general + 1
