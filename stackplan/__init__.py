"""stackplan: compile declarative infrastructure topologies into provisioning plans."""

__version__ = "0.1.0"
