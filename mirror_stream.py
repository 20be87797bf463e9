import sys

from streammirror.orchestrator import main

if __name__ == "__main__":
    sys.exit(main())
