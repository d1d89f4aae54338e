"""Container builds: supervision, engine calls, executor and rebuild decisions."""
