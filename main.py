"""
Cookie Filter Proxy
Main entry point for the application.

Usage:
  python main.py --origin www.example.com --cookie-prefix-filter app-
"""

from cookie_filter_proxy.proxy.server import main


if __name__ == "__main__":
    main()
