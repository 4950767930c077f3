import sys
from pathlib import Path

# Make 'brokertax' (src layout) and the shared test helpers importable
ROOT = Path(__file__).resolve().parents[1]
for path in (ROOT / "src", ROOT / "tests"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))
