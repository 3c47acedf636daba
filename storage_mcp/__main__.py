from storage_mcp.cli import main

main()
