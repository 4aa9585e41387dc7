from __future__ import annotations

# JetStream API
JS_DEFAULT_API_PREFIX = "$JS.API."
JS_DEFAULT_REQUEST_WAIT = 5.0
SUBJECT_SEPARATOR = "."

# API subject templates (suffix appended to the API prefix)
JS_API_ACCOUNT_INFO = "INFO"
JS_API_STREAMS = "STREAM.NAMES"
JS_API_STREAM_CREATE_T = "STREAM.CREATE.{stream}"
JS_API_STREAM_INFO_T = "STREAM.INFO.{stream}"
JS_API_CONSUMER_CREATE_T = "CONSUMER.CREATE.{stream}"
JS_API_DURABLE_CREATE_T = "CONSUMER.DURABLE.CREATE.{stream}.{durable}"
JS_API_CONSUMER_INFO_T = "CONSUMER.INFO.{stream}.{consumer}"
JS_API_REQUEST_NEXT_T = "CONSUMER.MSG.NEXT.{stream}.{consumer}"

# Inboxes
INBOX_PREFIX = "_INBOX"

# JetStream Ack
JS_ACK_PREFIX_0 = "$JS"
JS_ACK_PREFIX_1 = "ACK"

# $JS.ACK.<stream>.<consumer>.<delivered>.<sseq>.<cseq>.<tm>.<pending>
#
JS_ACK_TOKEN_COUNT = 9
# JS Ack metadata fields
JS_ACK_IDX_STREAM = 2
JS_ACK_IDX_CONSUMER = 3
JS_ACK_IDX_NUM_DELIVERED = 4
JS_ACK_IDX_STREAM_SEQ = 5
JS_ACK_IDX_CON_SEQ = 6
JS_ACK_IDX_TIME = 7
JS_ACK_IDX_NUM_PENDING = 8

# Value used for metadata fields which cannot be parsed
JS_ACK_UNPARSEABLE = -1

# JS Operations
JS_ACK_OP_ACK = b"+ACK"
JS_ACK_OP_NAK = b"-NAK"
JS_ACK_OP_PROGRESS = b"+WPI"
JS_ACK_OP_TERM = b"+TERM"
JS_ACK_OP_NEXT = b"+NXT"
JS_ACK_OP_NEXT_ONE = b'+NXT {"batch":1}'

# Publish headers
NATS_MSG_ID_HDR = "Nats-Msg-Id"
NATS_EXPECTED_STREAM_HDR = "Nats-Expected-Stream"
NATS_EXPECTED_LAST_SEQ_HDR = "Nats-Expected-Last-Sequence"
NATS_EXPECTED_LAST_MSG_ID_HDR = "Nats-Expected-Last-Msg-Id"

# API error codes
JS_API_ERR_CODE_NOT_ENABLED = 503

# Default Pending Limits of Subscriptions
DEFAULT_SUB_PENDING_MSGS_LIMIT = 512 * 1024
DEFAULT_SUB_PENDING_BYTES_LIMIT = 128 * 1024 * 1024
