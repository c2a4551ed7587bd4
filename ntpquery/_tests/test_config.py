import pytest

from .._config import QueryConfig


def test_defaults():
    config = QueryConfig()
    assert config.timeout == 20.0
    assert config.dns_timeout == 5.0
    assert config.port == 123


def test_converts_values():
    config = QueryConfig(timeout="1.5", dns_timeout=2, port="1123")
    assert config.timeout == 1.5
    assert isinstance(config.dns_timeout, float)
    assert config.port == 1123


@pytest.mark.parametrize(
    "kwargs",
    [
        {"timeout": 0},
        {"timeout": -1},
        {"dns_timeout": 0},
        {"port": 0},
        {"port": 65536},
        {"timeout": "soon"},
    ],
)
def test_rejects_bad_values(kwargs):
    with pytest.raises(ValueError):
        QueryConfig(**kwargs)


def test_from_environ():
    config = QueryConfig.from_environ(
        {
            "NTPQUERY_TIMEOUT": "3",
            "NTPQUERY_DNS_TIMEOUT": " 0.5 ",
            "NTPQUERY_PORT": "",
            "UNRELATED": "x",
        }
    )
    assert config == QueryConfig(timeout=3.0, dns_timeout=0.5)


def test_from_environ_empty():
    assert QueryConfig.from_environ({}) == QueryConfig()


def test_from_os_environ(monkeypatch):
    monkeypatch.setenv("NTPQUERY_PORT", "10123")
    monkeypatch.delenv("NTPQUERY_TIMEOUT", raising=False)
    monkeypatch.delenv("NTPQUERY_DNS_TIMEOUT", raising=False)
    assert QueryConfig.from_environ().port == 10123


def test_from_environ_bad_value():
    with pytest.raises(ValueError, match="port"):
        QueryConfig.from_environ({"NTPQUERY_PORT": "70000"})
