from flask_cors import CORS

from orderpay.services.order_store import OrderStoreClient
from orderpay.utils.logger import RequestLogger

cors = CORS()
order_store = OrderStoreClient()
request_logger = RequestLogger()
