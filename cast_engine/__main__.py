from cast_engine.cli import main

main()
