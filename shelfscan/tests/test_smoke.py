"""Public smoke tests for basic module wiring.

Keep these minimal and free of any real-world data.
"""

from __future__ import annotations


def test_imports() -> None:
    import shelfscan
    import shelfscan.application.receipts
    import shelfscan.cli.main
    import shelfscan.domain
    import shelfscan.receipt
    import shelfscan.runtime
    import shelfscan.runtime.receipt_server

    assert shelfscan is not None
    assert shelfscan.application.receipts is not None
    assert shelfscan.cli.main is not None
    assert shelfscan.domain is not None
    assert shelfscan.receipt is not None
    assert shelfscan.runtime is not None
    assert shelfscan.runtime.receipt_server is not None


def test_public_parse_entrypoint_is_exported() -> None:
    from shelfscan.application.receipts import ReceiptParser, parse

    assert callable(parse)
    assert ReceiptParser().parse("MILK WHOLE GALLON 3.99\nTOTAL 3.99").items
