"""Background producers: the long-poll event stream and the cursor paginator.

- **producer**: shared worker / sink / cancellation lifecycle
- **frames**: poll body and handshake payload parsing
- **router**: message frame -> typed events
- **stream**: ``EventStream`` state machine
- **paginator**: ``CursorPaginator`` over newest-first pages
"""
