"""Day-before reminder emails: window check, sweep, mailers and timer."""
