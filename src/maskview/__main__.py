from maskview.main import main

raise SystemExit(main())
