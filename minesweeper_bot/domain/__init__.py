"""Domain layer (pure logic).

- Keep game rules, message texts and text formatting here.
- Avoid I/O: no DB sessions, no HTTP/FastAPI, no browser.
"""
