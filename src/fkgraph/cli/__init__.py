"""fkgraph command line interface."""
