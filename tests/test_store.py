# -*- coding: utf-8 -*-
"""
Tests for the key-value cache stores.

Author
------
orbreg developers

License
-------
MIT License
Copyright (c) 2024 geoint.org
See LICENSE file for full text.

Created
-------
2026-10-07

Modified
--------
2026-10-12
"""

import pytest

from orbreg.store import FileStore, MemoryStore


class TestFileStore:

    def test_round_trip(self, tmp_path):
        store = FileStore(tmp_path / 'cache')
        assert not store.exists('left.vwip')
        store.write('left.vwip', b'\x01\x02')
        assert store.exists('left.vwip')
        assert store.read('left.vwip') == b'\x01\x02'
        assert (tmp_path / 'cache' / 'left.vwip').is_file()

    def test_overwrite(self, tmp_path):
        store = FileStore(tmp_path)
        store.write('k', b'old')
        store.write('k', b'new')
        assert store.read('k') == b'new'

    def test_missing_raises_keyerror(self, tmp_path):
        with pytest.raises(KeyError):
            FileStore(tmp_path).read('nope.match')

    def test_path_for(self, tmp_path):
        assert FileStore(tmp_path).path_for('a__b.match') == tmp_path / 'a__b.match'


class TestMemoryStore:

    def test_counts_traffic(self):
        store = MemoryStore()
        store.write('a', b'1')
        store.write('b', b'2')
        store.read('a')
        assert store.writes == 2
        assert store.reads == 1
        assert len(store) == 2
        assert sorted(store.keys()) == ['a', 'b']

    def test_exists_does_not_count_as_read(self):
        store = MemoryStore()
        store.write('a', b'1')
        assert store.exists('a')
        assert not store.exists('b')
        assert store.reads == 0

    def test_missing_raises_keyerror(self):
        with pytest.raises(KeyError):
            MemoryStore().read('a')
