"""In-process task orchestration for specialised workers.

Why not concurrent.futures / Celery?
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
A plain executor would run callables, but what this package has to get right
is the policy around them:

- Capability-weighted routing with load discount and head-of-line blocking.
- Per-worker admission limits on top of one global concurrency cap.
- Retry on execution failure, terminal non-preemptive timeouts, and
  first-writer-wins terminal transitions when a late result races a timeout.
- An ordered event stream that external UIs and loggers subscribe to.

All state lives in one process and is lost on exit, so a broker would only add
an operational dependency. Threads plus one lock are enough for this scope.
"""
