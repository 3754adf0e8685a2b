"""Application session: store, transport, debounce, merge, backup."""
