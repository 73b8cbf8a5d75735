# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT

"""CLI entry point for the signaling relay."""


def main() -> None:
    """Start the signaling relay on the configured host and port."""
    # Import here to avoid early initialization
    from common.config import config

    print(f"Starting signaling relay on http://{config.HOST}:{config.PORT}")

    import uvicorn

    uvicorn.run(
        "signaling.main:app",
        host=config.HOST,
        port=config.PORT,
        reload=config.RELOAD,
        # logging is configured by signaling.main
        log_config=None,
    )


if __name__ == "__main__":
    main()
