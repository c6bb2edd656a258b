"""
Agentlyne marketing site backend
"""
