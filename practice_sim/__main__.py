from practice_sim.cli import main


raise SystemExit(main())
