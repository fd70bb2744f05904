"""
dsnotes analytics.

- streamlit_app : local explorer for recorded bandit runs and the cyclical encoding
"""
