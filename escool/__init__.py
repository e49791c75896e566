"""
Storage layer for the eSchool project marketplace.

This package provides a single storage contract with an in-memory
implementation and a DynamoDB implementation, plus the selector that
picks one of them for the lifetime of the process.
"""
