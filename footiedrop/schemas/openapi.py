from footiedrop.schemas.common import ErrorResponse

# Every error body shares the ErrorResponse envelope; only the statuses differ per route.
_ALWAYS = (422, 500)


def error_responses(*status_codes: int) -> dict:
    return {code: {"model": ErrorResponse} for code in sorted({*status_codes, *_ALWAYS})}
