"""suiteshard: split a declared test suite into shards and run them in parallel."""

__version__ = "0.1.0"
