"""
The conversion pipeline: `ConversionOrchestrator` drains the job queue one job
at a time in a background thread.
"""
