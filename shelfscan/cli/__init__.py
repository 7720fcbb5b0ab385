"""Command-line interface for shelfscan.

Usage:
    shelfscan parse <file|-> [--store NAME] [--json] [--no-ai]
    shelfscan correct <original> <corrected> --store NAME
    shelfscan hide <original> --store NAME
    shelfscan feedback <original> correct|incorrect --store NAME
    shelfscan stats [--export]
    shelfscan reset-learning --yes
    shelfscan serve [--host] [--port]
"""
