from run_jenkins.run_jenkins import cli

cli()
