import base64
import email
import os
import subprocess
import sys
from unittest import mock

import pytest
import yaml

from tailboot.cli import build_userdata, get_template, write_userdata
from tailboot.config import load_config
from tailboot.keys import create_key, ssh_public_keyline, write_key
from tailboot.provision.validate import validate_userdata

from testdata import AUTH_KEY


def _get_clean_env(**extra):
    """
    A helper method that ensures that no tailboot variables leak into the
    environment of the tested program.
    """
    env = {}
    for (key, val) in dict(os.environ).items():
        if not key.startswith(("TAILSCALE_", "TAILBOOT_")):
            env[key] = val
    env.update(extra)
    return env


def _tailboot(*args, **env):
    cmd = [sys.executable, '-m', 'tailboot'] + list(args)
    return subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE,
                          env=_get_clean_env(**env), check=False)


def _parts(userdata):
    return email.message_from_string(userdata).get_payload()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "node.yml"
    with open(path, "w") as fh:
        yaml.dump({"username": "alice", "exit-node": True}, fh)
    return str(path)


def test_help():
    proc = _tailboot('--help')
    output = proc.stdout.decode("utf-8")
    assert proc.returncode == 0
    assert "usage:" in output
    assert "template" in output


def test_command_help():
    proc = _tailboot('template', '--help')
    assert proc.returncode == 0
    assert b"--force" in proc.stdout
    assert b"Traceback" not in proc.stderr


def test_version():
    proc = _tailboot('--version')
    assert proc.returncode == 0
    assert b"Tailboot version:" in proc.stdout
    assert b"Traceback" not in proc.stderr


def test_template_command():
    proc = _tailboot('-v', 'quiet', 'template')
    output = proc.stdout.decode("utf-8")
    assert proc.returncode == 0
    assert "--auth-key=${tailscale_key}" in output
    assert validate_userdata(output, allow_placeholders=True) == []


def test_template_verbosity_debug():
    proc = _tailboot('-v', 'debug', 'template')
    assert proc.returncode == 0
    assert b"Traceback" not in proc.stderr
    assert b"--auth-key=${tailscale_key}" in proc.stdout


def test_render_missing_directory(config_file, tmp_path):
    output = str(tmp_path / "missing" / "user-data.txt")
    proc = _tailboot('render', config_file, '--output', output,
                     TAILSCALE_KEY=AUTH_KEY)
    assert proc.returncode == 1
    assert b"Traceback" not in proc.stderr
    assert b"No such file or directory" in proc.stdout

    proc = _tailboot('template', '--output', output)
    assert proc.returncode == 1
    assert b"Traceback" not in proc.stderr


def test_render_command(config_file, tmp_path):
    output = str(tmp_path / "user-data.txt")
    proc = _tailboot('render', config_file, '--output', output,
                     TAILSCALE_KEY=AUTH_KEY)
    assert proc.returncode == 0

    with open(output) as fh:
        userdata = fh.read()
    assert validate_userdata(userdata) == []
    assert "--advertise-exit-node" in userdata
    config = yaml.safe_load(_parts(userdata)[0].get_payload())
    assert config["users"][0]["name"] == "alice"


def test_render_needs_key(config_file):
    proc = _tailboot('render', config_file)
    assert proc.returncode == 1
    assert b"TAILSCALE_KEY" in proc.stdout


def test_validate_command(tmp_path):
    path = tmp_path / "user-data.txt"
    path.write_text("not user-data\n")
    proc = _tailboot('validate', str(path))
    assert proc.returncode == 1
    assert b"multipart/mixed" in proc.stdout


def test_validate_command_binary(tmp_path):
    path = tmp_path / "user-data.bin"
    path.write_bytes(b"\xff\xfe")
    proc = _tailboot('validate', str(path))
    assert proc.returncode == 1
    assert b"Traceback" not in proc.stderr

    proc = _tailboot('validate', str(tmp_path / "missing.txt"))
    assert proc.returncode == 1
    assert b"Traceback" not in proc.stderr


def test_build_userdata(config_file):
    config = load_config(config_file)
    with pytest.raises(ValueError):
        build_userdata(config)

    config['tailscale-key'] = AUTH_KEY
    userdata = build_userdata(config)
    assert ("--auth-key=%s" % AUTH_KEY) in userdata
    assert "${" not in userdata


def test_generate_ssh_key(tmp_path):
    config = {"username": "alice", "generate-ssh-key": True}
    template = get_template(config, key_directory=str(tmp_path))
    assert os.path.exists(str(tmp_path / "alice-id_rsa"))
    assert "ssh-rsa " in template
    assert "alice@tailboot" in template


def test_generate_ssh_key_keeps_existing(tmp_path):
    path = str(tmp_path / "alice-id_rsa")
    key = create_key()
    write_key(key, path)
    with open(path, "rb") as fh:
        existing = fh.read()

    config = {"username": "alice", "generate-ssh-key": True}
    template = get_template(config, key_directory=str(tmp_path))
    with open(path, "rb") as fh:
        assert fh.read() == existing
    assert ssh_public_keyline(key) in template


def test_generate_ssh_key_refuses_unreadable(tmp_path):
    path = tmp_path / "alice-id_rsa"
    path.write_text("PRECIOUS EXISTING KEY")

    config = {"username": "alice", "generate-ssh-key": True}
    with pytest.raises(ValueError):
        get_template(config, key_directory=str(tmp_path))
    assert path.read_text() == "PRECIOUS EXISTING KEY"


def test_script_from_config(tmp_path):
    script = tmp_path / "extra.sh"
    script.write_text("#!/bin/sh\nufw allow in on tailscale0\n")
    template = get_template({"script": str(script)})
    assert _parts(template)[1].get_payload() == (
        "#!/bin/bash\n"
        "# This script is meant to be run in the User Data of each Instance "
        "while it's booting.\n"
        "set -e\n"
        "ufw allow in on tailscale0\n")


def test_write_userdata(tmp_path, capsys):
    assert write_userdata("hello") is None
    assert capsys.readouterr().out == "hello\n"

    path = str(tmp_path / "user-data.txt")
    assert write_userdata("hello", path, encode=True) == path
    with open(path) as fh:
        assert base64.b64decode(fh.read()) == b"hello"


def test_write_userdata_confirm(tmp_path):
    path = tmp_path / "user-data.txt"
    path.write_text("old")

    with mock.patch("builtins.input", return_value="n"):
        assert write_userdata("new", str(path)) is None
    assert path.read_text() == "old"

    with mock.patch("builtins.input", return_value="y"):
        assert write_userdata("new", str(path)) == str(path)
    assert path.read_text() == "new"

    assert write_userdata("newer", str(path), force=True) == str(path)
    assert path.read_text() == "newer"
