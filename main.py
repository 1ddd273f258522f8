"""
main.py: CLI entry point for development use.

For production / packaging, prefer:
    python -m krs_planner.cli --catalog ...
or install with `pip install -e .` and run:
    krs-cli --catalog ...

sys.path manipulation here lets `python main.py --catalog ...` work from a
fresh checkout without a prior editable install.
"""
import sys
from pathlib import Path

_src = Path(__file__).parent / "src"
if str(_src) not in sys.path:
    sys.path.insert(0, str(_src))

from krs_planner.cli import main  # noqa: E402

if __name__ == "__main__":
    main()
