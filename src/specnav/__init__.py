"""specnav -- Navigate between OpenAPI specs and the code that implements them.

This package indexes OpenAPI 3.x documents (YAML or JSON, optionally split
across files through ``$ref``) and resolves cross references in both
directions:

* **spec -> code** -- from an operation in a spec file to the controller
  method, delegate, or client function that implements or consumes it.
* **code -> spec** -- from a method or class in source code to the
  operation, component schema, or tag it was generated from.

Typical usage::

    from specnav.navigation import Navigator

    navigator = Navigator.for_project("./my-service")
    navigator.indexer.rebuild()
    identity = navigator.extract_operation_identity("api.yaml", line=12).items[0]
    for symbol in navigator.resolve_implementation(identity).items:
        print(symbol.display_name, symbol.file_path, symbol.line)

Modules:
    app: Typer application factory and CLI entry point.
    models: Pydantic models shared across the entire package.
    config: XDG-aware configuration with project-level overrides.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
