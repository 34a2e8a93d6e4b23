"""Decoding of heterogeneous backend payloads into typed records.

- **ids**: identifier canonicalization (string / float / ``fbid:`` prefixed)
- **variant**: ordered-trial decoding against a list of pydantic shapes
- **attachments**: attachment payloads (inline and blob envelopes)
- **actions**: thread action-log entries
"""
