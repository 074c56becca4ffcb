import pytest

from streamchat.endpoint import ProtocolVariant


def test_config_has_base_url(config):
    assert config.base_url == "http://localhost:11434"


def test_config_has_model(config):
    assert config.model == "llama3.2:latest"


def test_config_has_timeouts(config):
    assert config.idle_timeout == 30.0
    assert config.connect_timeout == 10.0


def test_config_has_allowed_origins(config):
    assert len(config.allowed_origins) > 0
    assert isinstance(config.allowed_origins, list)


def test_config_builds_endpoint(config):
    endpoint = config.endpoint()

    assert endpoint.base_url == "http://localhost:11434"
    assert endpoint.api_key == "test-key-123"
    assert endpoint.model == "llama3.2:latest"
    assert endpoint.protocol_variant is ProtocolVariant.OPENAI


def test_config_without_base_url_has_no_endpoint(monkeypatch):
    monkeypatch.delenv("CHAT_BASE_URL", raising=False)
    monkeypatch.setattr("config.load_dotenv", lambda **kwargs: None)

    from config import Config

    assert Config.from_env().endpoint() is None


def test_config_parses_llama_stack(monkeypatch):
    monkeypatch.setenv("CHAT_PROTOCOL", "llama-stack")
    monkeypatch.setattr("config.load_dotenv", lambda **kwargs: None)

    from config import Config

    assert Config.from_env().protocol is ProtocolVariant.LLAMA_STACK


def test_config_raises_error_for_unknown_protocol(monkeypatch):
    monkeypatch.setenv("CHAT_PROTOCOL", "grpc")
    monkeypatch.setattr("config.load_dotenv", lambda **kwargs: None)

    from config import Config

    with pytest.raises(RuntimeError) as exc_info:
        Config.from_env()
    assert "Unsupported protocol variant" in str(exc_info.value)


def test_config_raises_error_for_bad_timeout(monkeypatch):
    monkeypatch.setenv("CHAT_IDLE_TIMEOUT", "soon")
    monkeypatch.setattr("config.load_dotenv", lambda **kwargs: None)

    from config import Config

    with pytest.raises(RuntimeError) as exc_info:
        Config.from_env()
    assert "CHAT_IDLE_TIMEOUT" in str(exc_info.value)
