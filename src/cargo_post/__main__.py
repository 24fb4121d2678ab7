from cargo_post.cli import main

raise SystemExit(main())
