"""Start the API with uvicorn on SERVER_PORT."""


def main() -> None:
    import uvicorn

    from techquiz_api.config import settings
    from techquiz_api.logging_config import setup_logging
    from techquiz_api.main import app

    setup_logging(settings.log_level)
    uvicorn.run(app, host="0.0.0.0", port=settings.server_port)


if __name__ == "__main__":
    main()
