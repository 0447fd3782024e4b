"""Client side: local storage, backend API client and the mode-aware task client."""
