import sys

from keyvault_db.cli import main

sys.exit(main())
