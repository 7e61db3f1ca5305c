import pytest

from assignment_extract.settings import runtime_settings_from_env


@pytest.mark.unit
def test_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("APP_ROLE", "APP_PORT", "DOCUMENT_SOURCE_FILE", "DEFINITION_COMPAT_POLICY"):
        monkeypatch.delenv(name, raising=False)

    settings = runtime_settings_from_env()

    assert settings.role == "api"
    assert settings.port == 8000
    assert settings.document_source_file is None
    assert settings.definition_compat_policy == "strict"


@pytest.mark.unit
@pytest.mark.parametrize("raw_port", ["not-a-number", "0", "-5"])
def test_invalid_port_falls_back_to_default(monkeypatch: pytest.MonkeyPatch, raw_port: str) -> None:
    monkeypatch.setenv("APP_PORT", raw_port)

    assert runtime_settings_from_env().port == 8000


@pytest.mark.unit
def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_PORT", "9100")
    monkeypatch.setenv("DOCUMENT_SOURCE_FILE", "/tmp/docs.yaml")
    monkeypatch.setenv("DEFINITION_COMPAT_POLICY", "compatible")

    settings = runtime_settings_from_env()

    assert settings.port == 9100
    assert settings.document_source_file == "/tmp/docs.yaml"
    assert settings.definition_compat_policy == "compatible"
