"""
Session auth: users table, bcrypt passwords, signed session tokens.
"""
