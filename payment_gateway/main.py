from __future__ import annotations

from payment_gateway.runtime.app import main


if __name__ == "__main__":
    main()
