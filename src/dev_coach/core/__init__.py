"""Transport-agnostic core: ports, errors, timezone boundary, session, runtime."""
