"""
Core gallery logic.

This module is framework-agnostic - it doesn't import FastAPI or boto3.
The object store is reached only through the ObjectStore protocol, so
the listing and upload rules can be tested against an in-memory store.
"""
