"""authgate -- one session contract for password, OTP, and OAuth logins.

This package sits between a login front-end and an external identity
provider (IdP). It accepts one of three credential kinds, delegates the
actual verification to the IdP over HTTP, and mints a local session that
carries the IdP's opaque token back to the caller.

Typical workflow::

    authgate init --name corp --idp-url https://idp.example.com
    authgate login password --username alice
    authgate session show

Modules:
    app: Typer application factory and CLI entry point.
    gateway: Login attempts that tie verifiers and sessions together.
    models: Pydantic models shared across the entire package.
    config: XDG-aware configuration and profile management.
    exceptions: Typed error taxonomy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
