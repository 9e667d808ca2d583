# create-batches.py — split developers-data.json into data/developers-batch-N.json
import sys

from devmap.batches import main

if __name__ == "__main__":
    sys.exit(main())
