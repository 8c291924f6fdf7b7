from field_telemetry.main import main

raise SystemExit(main())
