from boxoffice.db.session import Base
from boxoffice.models.show import Show, ShowSeat
from boxoffice.models.booking import Booking, BookingSeat
