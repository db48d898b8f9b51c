import logging.config

import click
import httpx

import blobsize
from blobsize.oci import Client, ClientPool
from blobsize.oci.digest import digest_hex

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "logfmt": {
            "format": "time=%(asctime)s level=%(levelname)s logger=%(name)s msg=%(message)s",
        },
    },
    "handlers": {
        "default": {
            "formatter": "logfmt",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
        },
    },
    "loggers": {
        "blobsize": {"handlers": ["default"], "level": "INFO", "propagate": False},
        "httpx": {"handlers": ["default"], "level": "WARNING", "propagate": False},
    },
}


def setup_logging(debug: bool = False):
    logging.config.dictConfig(LOGGING_CONFIG)
    if debug:
        logging.getLogger("blobsize").setLevel(logging.DEBUG)


@click.command()
@click.argument("image_names", nargs=-1, required=True)
@click.option("-u", "--username", help="Username", envvar="BLOBSIZE_USERNAME")
@click.option("-p", "--password", help="Password", envvar="BLOBSIZE_PASSWORD")
@click.option("--insecure", help="Use plain HTTP for registries", is_flag=True)
@click.option("--timeout", help="Request timeout in seconds", type=float, default=30.0)
@click.option("-d", "--debug", help="Debug output", is_flag=True)
def cli(
    image_names: tuple[str, ...],
    username: str | None,
    password: str | None,
    insecure: bool,
    timeout: float,
    debug: bool,
):
    """List the manifest and layer blobs of IMAGE_NAMES with their sizes.

    An image name without tag or digest covers all tags of the repository.
    """
    setup_logging(debug=debug)
    scheme = "http" if insecure else "https"

    def make_client(registry: str) -> Client:
        return Client(
            registry_url=f"{scheme}://{registry}",
            username=username,
            password=password,
            timeout=timeout,
        )

    with ClientPool(make_client) as clients:
        try:
            blobs, total = blobsize.oci.run(image_names, clients=clients)
        except (blobsize.oci.BlobSizeError, httpx.HTTPError) as e:
            raise click.ClickException(str(e)) from e

    for digest, size in sorted(blobs.items()):
        click.echo(f"{digest_hex(digest)} {size}")
    click.echo(f"total: {total}")


if __name__ == "__main__":
    cli()
