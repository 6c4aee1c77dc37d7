from collections.abc import MutableMapping

PREFIX = "pref:"


class PreferenceStore:
    """Client-local scratch space (sort order and the like), wiped on sign-out.

    Backed by any mutable mapping; the app hands in ``st.session_state`` so
    preferences live exactly as long as the browser session.
    """

    def __init__(self, backend=None):
        if backend is None:
            backend = {}
        if not isinstance(backend, MutableMapping):
            raise TypeError("preference backend must be a mutable mapping")
        self._backend = backend

    def get(self, key, default=None):
        return self._backend.get(PREFIX + key, default)

    def set(self, key, value):
        self._backend[PREFIX + key] = value

    def delete(self, key):
        self._backend.pop(PREFIX + key, None)

    def keys(self):
        return [k[len(PREFIX):] for k in list(self._backend.keys()) if str(k).startswith(PREFIX)]

    def clear(self):
        for key in self.keys():
            self.delete(key)
