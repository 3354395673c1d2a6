"""Run the pytest suites as fixture generators, optionally followed by vector conversion."""

from __future__ import annotations

import argparse
import os
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent


def main() -> int:
    parser = argparse.ArgumentParser(description="Fill escrow fixtures")
    parser.add_argument("--output", default=str(ROOT / "fixtures"))
    parser.add_argument("--vectors", default=None, help="Also convert fixtures into this vectors dir")
    parser.add_argument("-k", dest="keyword", default=None, help="Only fill tests matching this expression")
    args = parser.parse_args()

    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join([str(ROOT / "src"), str(ROOT)])

    cmd = [sys.executable, "-m", "pytest", str(ROOT / "tests"), "-q", "--output", args.output]
    if args.keyword:
        cmd += ["-k", args.keyword]
    print("Running:", " ".join(cmd))
    rc = subprocess.call(cmd, env=env, cwd=str(ROOT))
    if rc != 0 or not args.vectors:
        return rc

    convert = [
        sys.executable,
        str(ROOT / "tools" / "fixtures_to_vectors.py"),
        "--fixtures",
        args.output,
        "--vectors",
        args.vectors,
    ]
    print("Running:", " ".join(convert))
    return subprocess.call(convert, env=env, cwd=str(ROOT))


if __name__ == "__main__":
    raise SystemExit(main())
