from starlette import status
from starlette.responses import Response


def see_other(location: str) -> Response:
    """303 redirect with an empty body; the browser follows it with a GET."""
    return Response(status_code=status.HTTP_303_SEE_OTHER, headers={"Location": location})
