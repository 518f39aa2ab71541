"""Prometheus metrics shared by the API, the worker and the bots."""

from prometheus_client import Counter, Histogram

api_requests_total = Counter('api_requests_total', 'Total API requests', ['method', 'endpoint', 'status'])
api_request_duration = Histogram('api_request_duration_seconds', 'API request duration')

inbound_messages_total = Counter('inbound_messages_total', 'Inbound messages dispatched to a bot', ['bot'])
outbound_messages_total = Counter('outbound_messages_total', 'Outbound messages sent via the bridge', ['status'])

slot_holds_total = Counter('slot_holds_total', 'Slot hold attempts', ['outcome'])
bookings_confirmed_total = Counter('bookings_confirmed_total', 'Total bookings confirmed')
booking_confirm_failures_total = Counter('booking_confirm_failures_total', 'Confirm attempts not granted', ['reason'])
