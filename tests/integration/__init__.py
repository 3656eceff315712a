"""
Integration tests package.

Integration tests exercise several components together: AccountService,
both stores, the token issuer and a real (SQLite) database, including
concurrent writers on separate sessions.

To run only integration tests:
    pytest tests/integration/ -v -m integration
"""
