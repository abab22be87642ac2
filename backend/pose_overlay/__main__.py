from pose_overlay.main import main

raise SystemExit(main())
