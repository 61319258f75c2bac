"""
Basic stream client example using stream_transport.

This example demonstrates how to use the RequestContextBuilder
to open response streams for outbound requests.
"""

import logging

from stream_transport import (
    ConnectionError,
    OutboundRequest,
    RequestContextBuilder,
    SSL_VERIFY_PEER,
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def simple_get_request(builder: RequestContextBuilder) -> None:
    """Demonstrate a simple GET request."""
    logger.info("Making simple GET request...")

    request = OutboundRequest.create(
        method="GET",
        url="https://httpbin.org/get",
        headers=[("Accept", "application/json")],
        transport_options={SSL_VERIFY_PEER: True},
    )

    with builder.build(request) as handle:
        logger.info(f"Response status: {handle.status_line}")
        for line in handle.response_headers:
            logger.info(f"  {line}")

        body = handle.read()
        logger.info(f"Response body length: {len(body)} bytes")


def post_request_with_fields(builder: RequestContextBuilder) -> None:
    """Demonstrate a POST request with form fields and Basic auth."""
    logger.info("Making POST request with form fields...")

    request = OutboundRequest.create(
        method="POST",
        url="https://httpbin.org/post",
        headers=[("Content-Type", "application/x-www-form-urlencoded")],
        username="demo",
        password="secret",
        post_fields={"message": "Hello, World!"},
    )

    def before_send(outbound: OutboundRequest) -> None:
        outbound.set_header("X-Example", "basic_stream_client")

    with builder.build(request, before_send=before_send) as handle:
        logger.info(f"Response status: {handle.status_code}")

        total_bytes = 0
        for chunk in handle:
            total_bytes += len(chunk)
        logger.info(f"Streamed {total_bytes} bytes")


def failing_request(builder: RequestContextBuilder) -> None:
    """Demonstrate the error raised when a stream cannot be opened."""
    request = OutboundRequest.create("GET", "http://127.0.0.1:9/")

    try:
        builder.build(request, options={"http": {"timeout": 2}})
    except ConnectionError as e:
        logger.info(f"Expected failure: {e.message}")


def main() -> None:
    """Run all examples."""
    logger.info("Starting stream client examples...")

    builder = RequestContextBuilder()

    simple_get_request(builder)
    print()

    post_request_with_fields(builder)
    print()

    failing_request(builder)

    logger.info("All examples completed successfully!")


if __name__ == "__main__":
    main()
