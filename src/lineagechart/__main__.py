"""Command-line interface."""
from lineagechart.main import main

if __name__ == "__main__":
    main()
