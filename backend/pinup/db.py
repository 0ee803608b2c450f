# Simple in-memory database for development
import threading

# Thread-safe in-memory storage
_storage = {}
_sets = {}
_lock = threading.Lock()


def get(key: str):
    """Get value from in-memory storage by key"""
    with _lock:
        return _storage.get(key)


def set(key: str, data):
    """Store data in in-memory storage with key"""
    with _lock:
        _storage[key] = data
        return True


def delete(key: str) -> bool:
    """Remove a key, returning whether it existed"""
    with _lock:
        return _storage.pop(key, None) is not None


def sadd(key: str, member: str):
    """Add a member to the set stored at key"""
    with _lock:
        _sets.setdefault(key, {})[member] = True


def srem(key: str, member: str) -> bool:
    """Remove a member from the set stored at key"""
    with _lock:
        members = _sets.get(key)
        if not members or member not in members:
            return False
        del members[member]
        if not members:
            del _sets[key]
        return True


def smembers(key: str) -> list:
    """Members of the set at key, in insertion order"""
    with _lock:
        return list(_sets.get(key, {}))


def clear():
    """Clear all data from storage (useful for testing)"""
    with _lock:
        _storage.clear()
        _sets.clear()
