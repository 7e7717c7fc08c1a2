"""Tests for the shell command parser."""

import pytest

from cli.models import (
    AddCommand,
    CancelCommand,
    EnableCommand,
    ListCommand,
    StartCommand,
    UploadCommand,
)
from cli.parser import ParseError, parse_command


def test_parse_add():
    assert parse_command('add a.bin "my file.pdf"') == AddCommand(file_list=('a.bin', 'my file.pdf'))


def test_parse_start_with_defaults():
    assert parse_command("start 1155512345") == StartCommand(session_id="1155512345")


def test_parse_start_full():
    cmd = parse_command("start 1155512345 http://test/upload folder=7")

    assert cmd.url == "http://test/upload"
    assert cmd.additional_data == "folder=7"


def test_parse_upload():
    cmd = parse_command("upload video.mp4 http://test/upload")

    assert cmd == UploadCommand(file_path="video.mp4", url="http://test/upload")


def test_parse_cancel():
    assert parse_command("cancel 1155512345") == CancelCommand(session_id="1155512345")


def test_parse_list():
    assert parse_command("list") == ListCommand()


def test_parse_enable_disable():
    assert parse_command("enable").enabled is True
    assert parse_command("disable") == EnableCommand(enabled=False, command="disable")


@pytest.mark.parametrize("line", [
    "",
    "   ",
    "add",
    "start",
    "start abc",
    "start 1 2 3 4",
    "upload",
    "cancel",
    "cancel 1 2",
    "list all",
    "enable now",
    "frobnicate",
    'add "unterminated',
])
def test_invalid_commands(line):
    with pytest.raises(ParseError):
        parse_command(line)
