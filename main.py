from biosphere_simulation.cli import main

if __name__ == "__main__":
    # e.g. python main.py --steps 12000 --telemetry reports --report
    raise SystemExit(main())
