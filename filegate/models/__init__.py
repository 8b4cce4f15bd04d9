from filegate.models.content_record import ContentRecord
from filegate.models.delivery_ticket import DeliveryTicket
from filegate.models.source_post import SourcePost

__all__ = ["ContentRecord", "DeliveryTicket", "SourcePost"]
