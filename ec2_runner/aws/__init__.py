"""AWS EC2 side of the runner lifecycle."""

from ec2_runner.aws.ami import select_image
from ec2_runner.aws.clients import EC2ClientFactory, ec2_client_factory
from ec2_runner.aws.instances import InstanceClient

__all__ = ["EC2ClientFactory", "InstanceClient", "ec2_client_factory", "select_image"]
