# Each worker holds its own in-memory contact rate limit table.
# Set CONTACT_RATE_LIMIT_STORE=cache with REDIS_ENABLED=True to share it.
bind = "unix:/var/www/site/site-backend/gunicorn.sock"
workers = 2
timeout = 30

# Logging
accesslog = "/var/log/site-backend/access.log"
errorlog = "/var/log/site-backend/error.log"
loglevel = "info"

proc_name = "site-backend"
