"""Obra Board: construction-project scheduling on Streamlit."""
