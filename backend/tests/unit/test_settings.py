import pytest
from pydantic import ValidationError

from meetmux.settings import Settings


def test_posix_tz_variable_is_not_read_as_local_timezone(monkeypatch):
	monkeypatch.delenv("LOCAL_TIMEZONE", raising=False)
	monkeypatch.setenv("TZ", ":/etc/localtime")

	assert Settings().local_timezone == "UTC"


def test_local_timezone_must_be_an_iana_zone(monkeypatch):
	monkeypatch.setenv("LOCAL_TIMEZONE", "America/Toronto")
	assert Settings().local_timezone == "America/Toronto"

	monkeypatch.setenv("LOCAL_TIMEZONE", "Mars/Olympus_Mons")
	with pytest.raises(ValidationError):
		Settings()
