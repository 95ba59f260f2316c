from outparse.main import main

raise SystemExit(main())
