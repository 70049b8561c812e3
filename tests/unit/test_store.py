"""
Unit Tests - State Storage
"""
import json
from unittest.mock import MagicMock

import pytest

from salesrecon.config.settings import Settings, StorageSettings
from salesrecon.storage import JsonFileStore, MemoryStore, RedisStore, create_store
from salesrecon.storage.store import CATALOG_KEY, STATE_KEYS


class TestMemoryStore:
    """Tests for MemoryStore"""
    
    def test_missing_key(self):
        """Test unknown keys load as None"""
        assert MemoryStore().load(CATALOG_KEY) is None
    
    def test_values_are_copied(self):
        """Test callers never share state with the store"""
        store = MemoryStore()
        value = [{"sku": "A"}]
        store.save(CATALOG_KEY, value)
        value.append({"sku": "B"})
        
        assert store.load(CATALOG_KEY) == [{"sku": "A"}]
    
    def test_load_all(self):
        """Test every state key is present"""
        state = MemoryStore({CATALOG_KEY: []}).load_all()
        
        assert set(state) == set(STATE_KEYS)
        assert state[CATALOG_KEY] == []


class TestJsonFileStore:
    """Tests for JsonFileStore"""
    
    def test_save_and_reload(self, tmp_path):
        """Test values survive a new store instance"""
        path = tmp_path / "nested" / "state.json"
        JsonFileStore(str(path)).save_many({CATALOG_KEY: [{"sku": "A"}], "priceLogs": []})
        
        reloaded = JsonFileStore(str(path))
        
        assert reloaded.load(CATALOG_KEY) == [{"sku": "A"}]
        assert reloaded.load("priceLogs") == []
        assert json.loads(path.read_text())[CATALOG_KEY] == [{"sku": "A"}]
    
    def test_partial_save_keeps_other_keys(self, tmp_path):
        """Test saving one key leaves the rest of the document"""
        store = JsonFileStore(str(tmp_path / "state.json"))
        store.save_many({CATALOG_KEY: [1], "priceLogs": [2]})
        store.save(CATALOG_KEY, [3])
        
        assert JsonFileStore(str(tmp_path / "state.json")).load("priceLogs") == [2]
    
    def test_no_temp_files_left(self, tmp_path):
        """Test the temp file is replaced into place"""
        JsonFileStore(str(tmp_path / "state.json")).save(CATALOG_KEY, [])
        
        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]


class TestRedisStore:
    """Tests for RedisStore"""
    
    def test_load_namespaced(self):
        """Test keys are read under the namespace"""
        client = MagicMock()
        client.get.return_value = '[{"sku": "A"}]'
        
        value = RedisStore(client, namespace="test").load(CATALOG_KEY)
        
        client.get.assert_called_once_with("test:catalog")
        assert value == [{"sku": "A"}]
    
    def test_missing_key(self):
        """Test absent keys load as None"""
        client = MagicMock()
        client.get.return_value = None
        
        assert RedisStore(client).load(CATALOG_KEY) is None
    
    def test_save_many_uses_transaction(self):
        """Test multi-key saves go through one transactional pipeline"""
        client = MagicMock()
        pipe = client.pipeline.return_value
        
        RedisStore(client, namespace="test").save_many({CATALOG_KEY: [], "priceLogs": [1]})
        
        client.pipeline.assert_called_once_with(transaction=True)
        pipe.set.assert_any_call("test:catalog", "[]")
        pipe.set.assert_any_call("test:priceLogs", "[1]")
        pipe.execute.assert_called_once()


class TestCreateStore:
    """Tests for backend selection"""
    
    @pytest.mark.parametrize("backend,expected", [
        ("memory", MemoryStore),
        ("file", JsonFileStore),
        ("redis", RedisStore),
    ])
    def test_backend(self, backend, expected, tmp_path):
        """Test settings select the store class"""
        settings = Settings(storage=StorageSettings(backend=backend, path=str(tmp_path / "s.json")))
        
        assert isinstance(create_store(settings), expected)
    
    def test_invalid_backend(self):
        """Test unknown backends are rejected"""
        with pytest.raises(ValueError):
            StorageSettings(backend="sqlite")
