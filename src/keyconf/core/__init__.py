"""
Core engine for keyconf.

- registry: the catalog of managed components
- capabilities: what installed components report about their options
- config: option schemas, the config file parser/serializer, the change
  protocol, global rules and validation
- runtime: reload notification for running components
- engine: the operations offered to front ends
"""
