import sys


def main() -> int:
    """Console entrypoint (``auto-updater``).

    Runs the batch and returns its exit code. ``KeyboardInterrupt`` is
    converted into exit code ``130`` for consistency with typical shell
    semantics.
    """
    from .main_flow import main as run

    try:
        return run(sys.argv[1:])
    except KeyboardInterrupt:
        sys.stderr.write("Aborted by user.\n")
        return 130


__all__ = ["main"]
