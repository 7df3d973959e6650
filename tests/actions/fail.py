# "fail" action: exits with INPUT_CODE (default 1).
import os
import sys

print("failing on purpose", file=sys.stderr)
sys.exit(int(os.environ.get("INPUT_CODE") or 1))
