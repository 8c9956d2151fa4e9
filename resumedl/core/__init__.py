"""
Core transfer engine.

`download()` in `session` is the entry point. The `RetryController` drives a
session, the `pump` copies response bodies into the `ByteChannel` handed to
the caller.
"""
