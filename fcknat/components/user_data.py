"""Boot script for the fck-nat instance."""
import base64

import pulumi

__all__ = ["FCK_NAT_CONF", "render_user_data", "encode_user_data", "user_data_for"]

FCK_NAT_CONF = "/etc/fck-nat.conf"


def render_user_data(network_interface_id: str) -> str:
    """Point fck-nat at the static interface and restart the service."""
    return (
        "#!/bin/bash\n"
        f'echo "eni_id={network_interface_id}" >> {FCK_NAT_CONF}\n'
        "service fck-nat restart\n"
    )


def encode_user_data(script: str) -> str:
    return base64.b64encode(script.encode("utf-8")).decode("ascii")


def user_data_for(network_interface_id: pulumi.Input[str]) -> pulumi.Output[str]:
    return pulumi.Output.from_input(network_interface_id).apply(
        lambda eni_id: encode_user_data(render_user_data(eni_id))
    )
