from typing import Iterable, List


class BookingError(Exception):
    """Base class for seat inventory errors reported to the caller as {kind, message}."""

    status_code = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class InvalidLayout(BookingError):
    pass


class InvalidSelection(BookingError):
    pass


class UnknownSeat(BookingError):
    def __init__(self, labels: Iterable[str]) -> None:
        self.labels: List[str] = list(labels)
        super().__init__(f"Unknown seat(s) for this show: {', '.join(self.labels)}")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "seats": self.labels}


class ShowNotFound(BookingError):
    status_code = 404

    def __init__(self, show_id) -> None:
        super().__init__(f"Show {show_id} not found")


class ShowNotBookable(BookingError):
    status_code = 409


class SeatUnavailable(BookingError):
    status_code = 409

    def __init__(self, labels: Iterable[str]) -> None:
        self.labels: List[str] = list(labels)
        super().__init__(
            f"Seat(s) no longer available: {', '.join(self.labels)}"
        )

    def to_dict(self) -> dict:
        return {**super().to_dict(), "seats": self.labels}


class HoldExpired(BookingError):
    status_code = 409

    def __init__(self, message: str = "Seat hold has expired, please select your seats again") -> None:
        super().__init__(message)


class PersistenceError(BookingError):
    status_code = 500

    def __init__(self, message: str, inconsistent: bool = False) -> None:
        self.inconsistent = inconsistent
        super().__init__(message)

    def to_dict(self) -> dict:
        return {**super().to_dict(), "inconsistent": self.inconsistent}
