"""
Tontoo runtime package.

Tontoo is a small declarative language for describing a deployable
service: variables, named procedures, JSON-backed web APIs and an
embedded web server with optional TLS and session authentication.
A project's source tree is compiled into a single encrypted, compressed
bundle (``.tontoo``) that this runtime executes standalone.

The code is organised into several modules:

* ``bundle`` – the bundle codec (JSON → AES-256-CBC → gzip and back).
* ``builder`` – collects a project tree, syntax-checks ``.tont`` sources
  and writes the bundle artefacts.
* ``lang`` – the line-oriented directive parser and block state machine.
* ``runtime`` – interpreter state, file/command primitives, the module
  resolver, scheduling, external SQL connections and the bundle runner.
* ``web`` – the request handler, authentication and listeners behind the
  ``startWEB`` directive.
* ``cli`` – the ``tontoo`` command line interface.
"""

from importlib import metadata as _metadata

try:  # pragma: no cover - metadata lookup for installed distributions
    __version__ = _metadata.version("tontoo")
except _metadata.PackageNotFoundError:  # pragma: no cover - source tree
    __version__ = "1.9.0"

__all__ = ["__version__"]
