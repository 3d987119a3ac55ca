"""
Test package marker.

Keeps `tests` a regular package so `from tests.fakes import ...` resolves to
this checkout.

Test suite for keyconf:

- core/: registry, capabilities, engine and runtime notification
- core/config/: schema, parser, persistence, change protocol, global rules
  and configuration checks
- cli/: the command-line front end
- utils/: logging and error taxonomy
"""
