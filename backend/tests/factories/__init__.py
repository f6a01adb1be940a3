"""
Test factories: in-memory repositories and interface mocks.
"""
