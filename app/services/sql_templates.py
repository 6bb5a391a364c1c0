"""Ready-made SQL scripts offered in the console."""

AUTH_INIT_SCRIPT = """
-- pgcrypto provides gen_random_uuid() and password hashing helpers
CREATE EXTENSION IF NOT EXISTS pgcrypto;

CREATE TABLE IF NOT EXISTS users (
  id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
  email VARCHAR(255) UNIQUE NOT NULL,
  password_hash VARCHAR(255) NOT NULL,
  role VARCHAR(50) DEFAULT 'user',
  email_verified BOOLEAN DEFAULT FALSE,
  created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
  updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS sessions (
  id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
  user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
  token VARCHAR(255) UNIQUE NOT NULL,
  expires_at TIMESTAMP WITH TIME ZONE NOT NULL,
  created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
  ip_address VARCHAR(45),
  user_agent TEXT
);

CREATE INDEX IF NOT EXISTS idx_users_email ON users(email);
CREATE INDEX IF NOT EXISTS idx_sessions_user_id ON sessions(user_id);
CREATE INDEX IF NOT EXISTS idx_sessions_token ON sessions(token);
CREATE INDEX IF NOT EXISTS idx_sessions_expires_at ON sessions(expires_at);

CREATE OR REPLACE FUNCTION update_updated_at_column()
RETURNS TRIGGER AS $$
BEGIN
  NEW.updated_at = CURRENT_TIMESTAMP;
  RETURN NEW;
END;
$$ language 'plpgsql';

DROP TRIGGER IF EXISTS update_users_updated_at ON users;
CREATE TRIGGER update_users_updated_at
  BEFORE UPDATE ON users
  FOR EACH ROW
  EXECUTE FUNCTION update_updated_at_column();

COMMENT ON TABLE users IS 'Application users';
COMMENT ON TABLE sessions IS 'User authentication sessions';

SELECT 'Auth tables initialized successfully!' as result;
"""

RLS_SETUP_SCRIPT = """
ALTER TABLE users ENABLE ROW LEVEL SECURITY;

-- Users only see their own row
CREATE POLICY users_self_access ON users
  FOR ALL
  USING (id = current_setting('app.current_user_id')::uuid);

-- Admins see everything
CREATE POLICY users_admin_access ON users
  FOR ALL
  USING (current_setting('app.user_role', true) = 'admin');

ALTER TABLE sessions ENABLE ROW LEVEL SECURITY;

-- Users only see their own sessions
CREATE POLICY sessions_self_access ON sessions
  FOR ALL
  USING (user_id = current_setting('app.current_user_id')::uuid);

SELECT 'RLS policies created successfully!' as result;
"""
