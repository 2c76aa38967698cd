from __future__ import annotations

from dkan_importer.cli.app import main

raise SystemExit(main())
