"""
keyconf - Configuration manager for a suite of security tools

Provides one interface to list, inspect, change, validate and apply default
values across the configuration files of cooperating backend components
(gpg, gpgsm, gpg-agent, scdaemon, dirmngr).

Package Structure:
- core/: Component registry, option schemas, config file engine
- cli/: Typer command-line front end and exit codes
- utils/: Error taxonomy shared by core and cli
"""

__version__ = "0.3"
