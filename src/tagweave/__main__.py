from tagweave.cli import main

raise SystemExit(main())
