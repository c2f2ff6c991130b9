"""fck-nat based NAT instance for Pulumi AWS programs."""
