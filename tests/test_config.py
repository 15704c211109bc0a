from __future__ import annotations

from pathlib import Path

import pytest

from sclmdelta.config import (
    DEFAULT_REMOTE_PORT,
    ConfigError,
    load_config,
)

FULL_CONFIG = """
state_db = "{state_db}"

[library]
project = "PRJ"
alternate = "ALT"
group = "DEV"
types = ["COBOL", "COPY"]
job_card = '''
//SCLMJOB JOB (ACCT),'DBUTIL',CLASS=A
//STEP1 EXEC PGM=IKJEFT01
'''

[remote]
host = "zos.example.com"
user = "IBMUSER"
submit_command = "/u/ibmuser/bin/runjob"
timeout = 45
"""


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "sclmdelta.toml"
    path.write_text(text, encoding="utf-8")
    return path


def test_load_full_config(tmp_path) -> None:
    state_db = tmp_path / "state.sqlite3"
    config = load_config(_write(tmp_path, FULL_CONFIG.format(state_db=state_db)))

    assert config.library.library_key == "PRJ.ALT.DEV"
    assert config.library.types == ("COBOL", "COPY")
    assert "//SCLMJOB JOB" in config.library.job_card
    assert config.remote is not None
    assert config.remote.port == DEFAULT_REMOTE_PORT
    assert config.remote.timeout == 45
    assert config.remote.address == "IBMUSER@zos.example.com:22"
    assert config.state_db == state_db


def test_remote_section_is_optional(tmp_path) -> None:
    text = '[library]\nproject = "P"\nalternate = "A"\ngroup = "G"\n'
    config = load_config(_write(tmp_path, text))

    assert config.remote is None
    assert config.library.types == ()
    assert config.state_db.name == "state.sqlite3"


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ('[remote]\nhost = "h"\n', "[library]"),
        ('[library]\nproject = "P"\nalternate = "A"\n', "group"),
        ('[library]\nproject = "P"\nalternate = "A"\ngroup = "G"\ntypes = "COBOL"\n', "types"),
        (
            '[library]\nproject = "P"\nalternate = "A"\ngroup = "G"\n'
            '[remote]\nhost = "h"\nuser = "u"\nsubmit_command = "x"\nport = 0\n',
            "port",
        ),
        ("[library\n", "Invalid TOML"),
    ],
)
def test_invalid_config_raises(tmp_path, text: str, message: str) -> None:
    with pytest.raises(ConfigError) as excinfo:
        load_config(_write(tmp_path, text))
    assert message in str(excinfo.value)


def test_missing_config_file(tmp_path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path / "missing.toml")
