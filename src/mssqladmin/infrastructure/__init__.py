"""
Infrastructure layer: pyodbc, pywinrm, configuration and logging.
"""
