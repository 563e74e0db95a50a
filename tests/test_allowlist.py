from __future__ import annotations

import pytest

from rpztar.allowlist import is_selected, load_allow_list, parse_allow_list
from rpztar.errors import AllowListError


def test_parse_allow_list_ignores_empty_records():
    assert parse_allow_list(b"a\0\0bin/sh\0") == frozenset({b"a", b"bin/sh"})
    assert parse_allow_list(b"") == frozenset()


def test_load_allow_list_reads_raw_bytes(tmp_path):
    list_file = tmp_path / "files.list"
    list_file.write_bytes(b"caf\xe9\0etc/hosts\0")

    assert load_allow_list(list_file) == frozenset({b"caf\xe9", b"etc/hosts"})


def test_load_allow_list_missing_file(tmp_path):
    with pytest.raises(AllowListError, match="Error reading allow-list"):
        load_allow_list(tmp_path / "missing.list")


def test_is_selected_without_allow_list():
    assert is_selected(b"anything/at/all", None)


def test_is_selected_is_exact_membership():
    allow_list = frozenset({b"b", b"dir/file"})
    assert is_selected(b"b", allow_list)
    assert is_selected(b"dir/file", allow_list)
    assert not is_selected(b"a", allow_list)
    assert not is_selected(b"dir", allow_list)
    assert not is_selected(b"dir/file/", allow_list)
    assert not is_selected(b"B", allow_list)


def test_empty_allow_list_selects_nothing():
    assert not is_selected(b"a", frozenset())
