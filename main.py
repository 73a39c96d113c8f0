"""Run the Vanpool Booking Platform API with uvicorn."""

import uvicorn

from vanpool_booking.config import get_settings


def main():
    settings = get_settings()
    uvicorn.run("vanpool_booking.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
