from __future__ import annotations

from dashboard_provisioner.entrypoints.worker import main

if __name__ == "__main__":
    raise SystemExit(main())
