"""Helpers shared by the keyconf engine and its command-line front end."""
