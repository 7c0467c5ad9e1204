"""
Jira Discord Bot

Entry point for the application. Configuration comes from the
JIRABOT_CONFIG environment variable (a .env file is honoured).
"""

from jirabot.supervisor import main

if __name__ == "__main__":
    main()
