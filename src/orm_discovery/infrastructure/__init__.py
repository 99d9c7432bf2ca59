"""
Infrastructure Layer

Contains:
- auth: Cookie cache, headless browser login, session lifecycle
- http: Authenticated httpx client
- oreilly: Endpoint table, content client, chapter parser
"""
