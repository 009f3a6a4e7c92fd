ROLE_ADMIN = "admin"
ROLE_GUARD = "guard"
ROLE_RESIDENT = "resident"

# Roles a visitor may pick for themselves at registration; anything else becomes resident.
SELF_REGISTER_ROLES = (ROLE_RESIDENT, ROLE_GUARD)

STAFF_ROLES = (ROLE_GUARD, ROLE_ADMIN)

RECORD_TYPE_VISITOR = "visitor"
RECORD_TYPE_PARCEL = "parcel"

MIN_PASSWORD_LENGTH = 6
PHONE_PATTERN = r"^[0-9\-\+\(\)\s]{7,}$"

# Visitors page with page/page_size, parcels with limit/offset.
VISITOR_DEFAULT_PAGE = 1
VISITOR_DEFAULT_PAGE_SIZE = 20

PARCEL_DEFAULT_LIMIT = 10
PARCEL_MAX_LIMIT = 100
PARCEL_DEFAULT_OFFSET = 0

# Upper bound for page, page_size and offset so OFFSET/LIMIT fit a 64-bit SQL integer.
PAGING_MAX_VALUE = 2**31 - 1

PENDING_POLL_INTERVAL_SECONDS = 30
