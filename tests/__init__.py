"""Test suite configuration and marker guidance.

Use ``pytest -m smoke`` for rapid feedback on imports.
Use ``pytest -m unit`` for fast feedback on unit tests.
Use ``pytest`` to run everything.
"""
