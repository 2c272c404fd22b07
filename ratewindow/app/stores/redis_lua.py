"""Redis Lua scripts for the sliding window limiter.

These scripts provide atomic operations to prevent TOCTOU race conditions
when checking and consuming quota across multiple instances.
"""

# Atomic trim + count + conditional insert.
# Returns {admitted, count_before, ttl_ms}. A full window rejects every call,
# cost=0 included, and a cost that does not fit is rejected whole; nothing is
# written on rejection.
CONSUME_SCRIPT = """
    local key = KEYS[1]
    local window_start = tonumber(ARGV[1])
    local now = tonumber(ARGV[2])
    local cost = tonumber(ARGV[3])
    local max_requests = tonumber(ARGV[4])
    local window_ms = tonumber(ARGV[5])
    local token_prefix = ARGV[6]

    redis.call('ZREMRANGEBYSCORE', key, 0, window_start)
    local count = redis.call('ZCARD', key)

    if count >= max_requests or count + cost > max_requests then
        return {0, count, redis.call('PTTL', key)}
    end

    for i = 0, cost - 1 do
        redis.call('ZADD', key, now + i, token_prefix .. '-' .. i)
    end
    redis.call('PEXPIRE', key, window_ms)

    return {1, count, window_ms}
"""
