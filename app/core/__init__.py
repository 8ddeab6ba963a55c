"""Core contracts package.

Composition:
    - `errors`: error taxonomy mapped to HTTP responses by `app.api`.
    - `messages`: flat message model, conversation references, and the
      Intercom conversation normalizer.

Package import is side-effect free.
"""
