"""Parsing and validation of the local_server section of a fastly.toml manifest."""