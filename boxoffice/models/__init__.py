from boxoffice.models.show import Show, ShowSeat, ShowStatus, SeatStatus
from boxoffice.models.booking import Booking, BookingSeat, PaymentStatus
