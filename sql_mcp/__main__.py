from sql_mcp.main import main

main()
