from forms_demo.bridge.server import main

raise SystemExit(main())
