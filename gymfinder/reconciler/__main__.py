"""Main entry point for the geocoding reconciler."""

from gymfinder.reconciler.cli import main

if __name__ == "__main__":
    main()
