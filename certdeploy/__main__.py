"""Module execution entrypoint for `python -m certdeploy`."""

from certdeploy.main import main

if __name__ == "__main__":
    main()
