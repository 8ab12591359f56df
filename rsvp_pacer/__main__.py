"""Package entry point for ``python -m rsvp_pacer``.

RULES:
- This file must exist for ``python -m rsvp_pacer`` to work
- Delegates straight to the CLI's main()
"""

if __name__ == "__main__":
    from rsvp_pacer.cli import main
    main()
