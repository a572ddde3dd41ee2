REDIS_BODY_KEY = "obj:body:{key}" # record key, e.g. room:7HD92F - serialized payload
REDIS_META_KEY = "obj:meta:{key}" # record key - hash of string metadata
REDIS_META_PATTERN = "obj:meta:*"

RECORD_KEY = "{prefix}:{key}" # prefix is auth or room

# **Example `obj:meta:room:{code}` hash fields**
# - `offer_token` = identity token of the offering peer
# - `offer_next_poll` = unix seconds
# - `answer_token` = identity token of the answering peer, "" until joined
# - `answer_next_poll` = unix seconds, "" until joined

# **Example `obj:meta:auth:{token}` hash fields**
# - `kill_at` = unix seconds, "" once the peer joined a room
